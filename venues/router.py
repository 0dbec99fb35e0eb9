"""
venues/router.py - Uniswap V2-style router binding.

Quotes via getAmountsOut, swaps via swapExactTokensForTokens.
"""

from chains.providers import RPCProvider
from chains.signer import Signer
from core.logging import get_logger
from venues.abi import decode_uint_array, encode_call

logger = get_logger(__name__)

# getAmountsOut(uint256,address[])
SELECTOR_GET_AMOUNTS_OUT = "0xd06ca61f"
# swapExactTokensForTokens(uint256,uint256,address[],address,uint256)
SELECTOR_SWAP_EXACT_TOKENS_FOR_TOKENS = "0x38ed1739"


class V2Router:
    """
    Router for a single two-token pool.

    Usage:
        router = V2Router(provider, signer, router_address)
        amounts = await router.get_amounts_out(10**6, [usdc, stable])
    """

    def __init__(self, provider: RPCProvider, signer: Signer, address: str):
        self.provider = provider
        self.signer = signer
        self._address = address

    @property
    def address(self) -> str:
        return self._address

    async def get_amounts_out(self, amount_in: int, path: list[str]) -> list[int]:
        data = encode_call(
            SELECTOR_GET_AMOUNTS_OUT,
            [("uint256", amount_in), ("address[]", path)],
        )
        response = await self.provider.eth_call(to=self._address, data=data)
        amounts = decode_uint_array(response.result)

        logger.debug(
            "getAmountsOut",
            extra={"context": {"amount_in": amount_in, "amounts": amounts, "latency_ms": response.latency_ms}},
        )
        return amounts

    async def swap_exact_tokens_for_tokens(
        self,
        amount_in: int,
        min_amount_out: int,
        path: list[str],
        recipient: str,
        deadline: int,
    ) -> str:
        data = encode_call(
            SELECTOR_SWAP_EXACT_TOKENS_FOR_TOKENS,
            [
                ("uint256", amount_in),
                ("uint256", min_amount_out),
                ("address[]", path),
                ("address", recipient),
                ("uint256", deadline),
            ],
        )
        tx_hash = await self.signer.send_transaction(self._address, data)
        logger.debug(
            "swapExactTokensForTokens submitted",
            extra={"context": {
                "amount_in": amount_in,
                "min_amount_out": min_amount_out,
                "deadline": deadline,
                "tx_hash": tx_hash,
            }},
        )
        return tx_hash
