"""
strategy/simulator.py - Dry run of the two-leg peg trade.

RAISE_SUPPLY (price above peg):
  collateral --PSM sellGem (1:1, no fee)--> stablecoin --DEX--> collateral

REDUCE_SUPPLY (price below peg):
  collateral --DEX--> stablecoin --PSM buyGem (tout fee)--> collateral

Only quotes are read; nothing is submitted. All amounts stay int.
"""

from dataclasses import dataclass

from core.constants import PegAction, SimulationStatus
from core.exceptions import ErrorCode, PegKeeperError, SimulationFailure
from core.logging import get_logger
from core.math import (
    cap_trade_amount,
    conversion_factor,
    min_out_after_slippage,
    mint_output,
    pool_share_cap,
    profit_percentage,
    redeemable_collateral,
    wei_to_human,
)
from core.models import KeeperConfig, Token, TradePlan
from venues.interfaces import PegConverter, QuoteProvider, ReserveSource

logger = get_logger(__name__)


@dataclass(frozen=True)
class SimulationOutcome:
    """Either a plan or the reason there is none."""
    status: SimulationStatus
    plan: TradePlan | None = None

    @property
    def has_plan(self) -> bool:
        return self.status == SimulationStatus.PLANNED and self.plan is not None


class TradeSimulator:
    """
    Computes a TradePlan for a direction and wallet balance.

    Usage:
        simulator = TradeSimulator(config, router, psm, usdc, stable)
        outcome = await simulator.simulate(PegAction.RAISE_SUPPLY, balance)
    """

    def __init__(
        self,
        config: KeeperConfig,
        quoter: QuoteProvider,
        psm: PegConverter,
        collateral: Token,
        stablecoin: Token,
        reserves: ReserveSource | None = None,
    ):
        self.config = config
        self.quoter = quoter
        self.psm = psm
        self.collateral = collateral
        self.stablecoin = stablecoin
        self.reserves = reserves
        self.factor = conversion_factor(collateral.decimals, stablecoin.decimals)

    async def trade_size(self, balance: int) -> int:
        """min(balance, max_trade_amount), further capped by pool share if configured."""
        pool_cap = None
        if self.config.max_pool_share_percentage is not None and self.reserves is not None:
            try:
                reserve = await self.reserves.reserve_of(self.collateral.address)
            except PegKeeperError as e:
                raise SimulationFailure(
                    f"Pool reserve read failed: {e.message}",
                    code=ErrorCode.SIM_QUOTE_REVERT,
                    details=e.details,
                ) from e
            pool_cap = pool_share_cap(reserve, self.config.max_pool_share_percentage)
        return cap_trade_amount(balance, self.config.max_trade_amount, pool_cap)

    async def simulate(self, direction: PegAction, balance: int) -> SimulationOutcome:
        """
        Simulate the trade for `direction` using the wallet's collateral balance.

        Returns:
            SimulationOutcome with NO_BALANCE when there is nothing to trade

        Raises:
            SimulationFailure: a quote or fee read reverted
            ValueError: direction is NO_ACTION
        """
        if direction == PegAction.NO_ACTION:
            raise ValueError("Cannot simulate NO_ACTION")

        if balance <= 0:
            logger.warning("No collateral balance to perform arb")
            return SimulationOutcome(status=SimulationStatus.NO_BALANCE)

        amount_in = await self.trade_size(balance)

        try:
            if direction == PegAction.RAISE_SUPPLY:
                intermediate, expected_out = await self._simulate_raise(amount_in)
            else:
                intermediate, expected_out = await self._simulate_reduce(amount_in)
        except PegKeeperError as e:
            raise SimulationFailure(
                f"Simulation quote failed: {e.message}",
                code=ErrorCode.SIM_QUOTE_REVERT,
                details={"direction": direction.value, "amount_in": amount_in, **e.details},
            ) from e

        expected_profit = expected_out - amount_in
        tolerance = self.config.slippage_tolerance
        plan = TradePlan(
            direction=direction,
            amount_in=amount_in,
            expected_intermediate=intermediate,
            expected_out=expected_out,
            expected_profit=expected_profit,
            profit_percentage=profit_percentage(expected_profit, amount_in),
            min_intermediate_out=min_out_after_slippage(intermediate, tolerance),
            min_out=min_out_after_slippage(expected_out, tolerance),
            balance_before=balance,
        )

        logger.info(
            f"Simulated {direction.value}: "
            f"{wei_to_human(amount_in, self.collateral.decimals)} -> "
            f"{wei_to_human(intermediate, self.stablecoin.decimals)} -> "
            f"{wei_to_human(expected_out, self.collateral.decimals)} "
            f"(profit: {plan.profit_percentage:.3f}%)",
            extra={"context": plan.to_dict()},
        )
        return SimulationOutcome(status=SimulationStatus.PLANNED, plan=plan)

    async def _simulate_raise(self, amount_in: int) -> tuple[int, int]:
        minted = mint_output(amount_in, self.factor)
        amounts = await self.quoter.get_amounts_out(
            minted, [self.stablecoin.address, self.collateral.address]
        )
        return minted, amounts[-1]

    async def _simulate_reduce(self, amount_in: int) -> tuple[int, int]:
        amounts = await self.quoter.get_amounts_out(
            amount_in, [self.collateral.address, self.stablecoin.address]
        )
        bought = amounts[-1]
        tout = await self.psm.tout()
        return bought, redeemable_collateral(bought, self.factor, tout)
