"""
strategy/oracle.py - Market price of the stablecoin.

Quotes exactly one collateral unit through the exchange and inverts the
stablecoin output: if 1 USDC buys 1.02 stablecoin, the stablecoin trades
at ~0.9804 USDC.
"""

from core.exceptions import ErrorCode, OracleFailure, PegKeeperError
from core.logging import get_logger
from core.math import price_from_quote
from core.models import PriceSample, Token
from core.time import now_ms
from venues.interfaces import QuoteProvider

logger = get_logger(__name__)


class PriceOracle:
    """Read-only price discovery against the market exchange."""

    def __init__(self, quoter: QuoteProvider, collateral: Token, stablecoin: Token):
        self.quoter = quoter
        self.collateral = collateral
        self.stablecoin = stablecoin

    async def get_price(self) -> PriceSample:
        """
        Observe the stablecoin price in collateral units.

        Raises:
            OracleFailure: quote reverted or returned zero output
        """
        one_unit = 10 ** self.collateral.decimals
        path = [self.collateral.address, self.stablecoin.address]

        try:
            amounts = await self.quoter.get_amounts_out(one_unit, path)
        except PegKeeperError as e:
            raise OracleFailure(
                f"Price quote failed: {e.message}",
                code=ErrorCode.ORACLE_QUOTE_REVERT,
                details={"amount_in": one_unit, **e.details},
            ) from e

        stablecoin_out = amounts[-1] if amounts else 0
        if stablecoin_out <= 0:
            raise OracleFailure(
                "Price quote returned zero stablecoin output",
                code=ErrorCode.ORACLE_ZERO_OUTPUT,
                details={"amount_in": one_unit, "amounts": amounts},
            )

        price = price_from_quote(stablecoin_out, self.stablecoin.decimals)
        logger.debug(
            f"Stablecoin price: {price:.6f}",
            extra={"context": {"stablecoin_out": stablecoin_out}},
        )
        return PriceSample(
            price=price,
            collateral_in=one_unit,
            stablecoin_out=stablecoin_out,
            timestamp_ms=now_ms(),
        )
