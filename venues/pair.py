"""
venues/pair.py - Uniswap V2-style pair reserves.
"""

from chains.providers import RPCProvider
from core.exceptions import ErrorCode, InfraError
from venues.abi import decode_address, decode_uint

# getReserves() -> (uint112, uint112, uint32)
SELECTOR_GET_RESERVES = "0x0902f1ac"
# token0()
SELECTOR_TOKEN0 = "0x0dfe1681"
# token1()
SELECTOR_TOKEN1 = "0xd21220a7"


class V2Pair:
    """Read-only view of the keeper's liquidity pair."""

    def __init__(self, provider: RPCProvider, address: str):
        self.provider = provider
        self.address = address
        self._tokens: tuple[str, str] | None = None

    async def tokens(self) -> tuple[str, str]:
        if self._tokens is None:
            token0 = await self.provider.eth_call(to=self.address, data=SELECTOR_TOKEN0)
            token1 = await self.provider.eth_call(to=self.address, data=SELECTOR_TOKEN1)
            self._tokens = (decode_address(token0.result), decode_address(token1.result))
        return self._tokens

    async def get_reserves(self) -> tuple[int, int]:
        response = await self.provider.eth_call(to=self.address, data=SELECTOR_GET_RESERVES)
        return decode_uint(response.result, 0), decode_uint(response.result, 1)

    async def reserve_of(self, token_address: str) -> int:
        token0, token1 = await self.tokens()
        reserve0, reserve1 = await self.get_reserves()
        target = token_address.lower()
        if target == token0.lower():
            return reserve0
        if target == token1.lower():
            return reserve1
        raise InfraError(
            f"Token {token_address} is not in pair {self.address}",
            code=ErrorCode.INFRA_BAD_RESPONSE,
            details={"token0": token0, "token1": token1},
        )
