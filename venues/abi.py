"""
venues/abi.py - Minimal ABI encoding for the venue bindings.

Supports the only argument kinds the keeper sends: uint256, address and
address[] (router paths). Selectors are hardcoded in each adapter.
"""

from core.exceptions import ErrorCode, InfraError

WORD_HEX = 64  # 32 bytes
UINT256_MAX = 2**256 - 1


def _strip(hex_data: str) -> str:
    return hex_data[2:] if hex_data.startswith("0x") else hex_data


def encode_uint(value: int) -> str:
    """Encode uint256 as one 32-byte word (hex, no prefix)."""
    if value < 0 or value > UINT256_MAX:
        raise ValueError(f"uint256 out of range: {value}")
    return hex(value)[2:].zfill(WORD_HEX)


def encode_address(address: str) -> str:
    """Encode address left-padded to 32 bytes."""
    raw = _strip(address.lower())
    if len(raw) != 40:
        raise ValueError(f"Invalid address: {address}")
    return raw.zfill(WORD_HEX)


def encode_call(selector: str, args: list[tuple[str, object]]) -> str:
    """
    Encode calldata for `selector` with (type, value) arguments.

    Dynamic address[] arguments are placed in the tail with an offset
    word in the head.
    """
    head: list[str] = []
    tail: list[str] = []
    head_size = 32 * len(args)

    for abi_type, value in args:
        if abi_type == "uint256":
            head.append(encode_uint(value))
        elif abi_type == "address":
            head.append(encode_address(value))
        elif abi_type == "address[]":
            offset = head_size + 32 * len(tail)
            head.append(encode_uint(offset))
            tail.append(encode_uint(len(value)))
            tail.extend(encode_address(a) for a in value)
        else:
            raise ValueError(f"Unsupported ABI type: {abi_type}")

    return "0x" + _strip(selector) + "".join(head) + "".join(tail)


def _words(hex_result: str | None, min_words: int, what: str) -> list[str]:
    data = _strip(hex_result or "")
    if len(data) < WORD_HEX * min_words:
        raise InfraError(
            f"{what}: response too short ({len(data)} chars)",
            code=ErrorCode.INFRA_BAD_RESPONSE,
            details={"raw": (hex_result or "")[:100]},
        )
    return [data[i:i + WORD_HEX] for i in range(0, len(data), WORD_HEX)]


def decode_uint(hex_result: str | None, index: int = 0) -> int:
    """Decode the uint256 at word `index` of a return value."""
    words = _words(hex_result, index + 1, "decode_uint")
    return int(words[index], 16)


def decode_address(hex_result: str | None) -> str:
    """Decode a single address return value."""
    word = _words(hex_result, 1, "decode_address")[0]
    return "0x" + word[-40:]


def decode_uint_array(hex_result: str | None) -> list[int]:
    """Decode a single uint256[] return value (e.g. getAmountsOut)."""
    words = _words(hex_result, 2, "decode_uint_array")
    offset_words = int(words[0], 16) // 32
    if offset_words >= len(words):
        raise InfraError(
            "decode_uint_array: offset beyond response",
            code=ErrorCode.INFRA_BAD_RESPONSE,
        )
    length = int(words[offset_words], 16)
    items = words[offset_words + 1:offset_words + 1 + length]
    if len(items) != length:
        raise InfraError(
            f"decode_uint_array: expected {length} items, got {len(items)}",
            code=ErrorCode.INFRA_BAD_RESPONSE,
        )
    return [int(w, 16) for w in items]
