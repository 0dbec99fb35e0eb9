"""
venues/psm.py - Peg-stability module binding (Maker DssPsm interface).

sellGem: collateral in, stablecoin minted 1:1 (after decimal scaling)
buyGem:  stablecoin burned, exact collateral amount released (plus tout fee)
"""

from chains.providers import RPCProvider
from chains.signer import Signer
from core.logging import get_logger
from venues.abi import decode_address, decode_uint, encode_call

logger = get_logger(__name__)

# sellGem(address,uint256)
SELECTOR_SELL_GEM = "0x95991276"
# buyGem(address,uint256)
SELECTOR_BUY_GEM = "0x8d7ef9bb"
# tout()
SELECTOR_TOUT = "0xfae036d5"
# gem()
SELECTOR_GEM = "0x7bd2bea7"
# kusd() - stablecoin getter on the KUSD PSM
SELECTOR_KUSD = "0x2398a4d7"
# dai() - the same getter on Maker DssPsm deployments
SELECTOR_DAI = "0xf4b9fa75"
DEFAULT_SELECTOR_STABLECOIN = SELECTOR_KUSD


class PegStabilityModule:
    """
    Peg-stability module bound to the operator's signer.

    Usage:
        psm = PegStabilityModule(provider, signer, psm_address)
        fee = await psm.tout()
    """

    def __init__(
        self,
        provider: RPCProvider,
        signer: Signer,
        address: str,
        stablecoin_selector: str = DEFAULT_SELECTOR_STABLECOIN,
    ):
        self.provider = provider
        self.signer = signer
        self._address = address
        self.stablecoin_selector = stablecoin_selector

    @property
    def address(self) -> str:
        return self._address

    async def sell_gem(self, recipient: str, gem_amount: int) -> str:
        data = encode_call(SELECTOR_SELL_GEM, [("address", recipient), ("uint256", gem_amount)])
        tx_hash = await self.signer.send_transaction(self._address, data)
        logger.debug(
            "sellGem submitted",
            extra={"context": {"gem_amount": gem_amount, "tx_hash": tx_hash}},
        )
        return tx_hash

    async def buy_gem(self, recipient: str, gem_amount: int) -> str:
        data = encode_call(SELECTOR_BUY_GEM, [("address", recipient), ("uint256", gem_amount)])
        tx_hash = await self.signer.send_transaction(self._address, data)
        logger.debug(
            "buyGem submitted",
            extra={"context": {"gem_amount": gem_amount, "tx_hash": tx_hash}},
        )
        return tx_hash

    async def tout(self) -> int:
        response = await self.provider.eth_call(to=self._address, data=SELECTOR_TOUT)
        return decode_uint(response.result)

    async def gem(self) -> str:
        response = await self.provider.eth_call(to=self._address, data=SELECTOR_GEM)
        return decode_address(response.result)

    async def stablecoin(self) -> str:
        response = await self.provider.eth_call(to=self._address, data=self.stablecoin_selector)
        return decode_address(response.result)
