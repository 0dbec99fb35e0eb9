"""
venues/erc20.py - ERC20 token binding.
"""

from chains.providers import RPCProvider
from chains.signer import Signer
from core.logging import get_logger
from venues.abi import decode_uint, encode_call

logger = get_logger(__name__)

# approve(address,uint256)
SELECTOR_APPROVE = "0x095ea7b3"
# balanceOf(address)
SELECTOR_BALANCE_OF = "0x70a08231"
# decimals()
SELECTOR_DECIMALS = "0x313ce567"


class ERC20Token:
    """
    ERC20 token bound to the operator's signer.

    Usage:
        usdc = ERC20Token(provider, signer, "0xaf88...")
        balance = await usdc.balance_of(signer.address)
    """

    def __init__(self, provider: RPCProvider, signer: Signer, address: str):
        self.provider = provider
        self.signer = signer
        self._address = address
        self._decimals: int | None = None

    @property
    def address(self) -> str:
        return self._address

    async def approve(self, spender: str, amount: int) -> str:
        data = encode_call(SELECTOR_APPROVE, [("address", spender), ("uint256", amount)])
        tx_hash = await self.signer.send_transaction(self._address, data)
        logger.debug(
            "approve submitted",
            extra={"context": {"token": self._address, "spender": spender, "amount": amount, "tx_hash": tx_hash}},
        )
        return tx_hash

    async def balance_of(self, owner: str) -> int:
        data = encode_call(SELECTOR_BALANCE_OF, [("address", owner)])
        response = await self.provider.eth_call(to=self._address, data=data)
        return decode_uint(response.result)

    async def decimals(self) -> int:
        # Immutable on-chain, fetched once
        if self._decimals is None:
            response = await self.provider.eth_call(to=self._address, data=SELECTOR_DECIMALS)
            self._decimals = decode_uint(response.result)
        return self._decimals
