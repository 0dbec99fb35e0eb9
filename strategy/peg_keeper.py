"""
strategy/peg_keeper.py - Top-level peg check.

One invocation of check_and_arbitrage():
  cooldown gate -> price -> peg band -> balance -> simulation
  -> profitability gates -> execution -> cooldown + ledger

Every failure inside a cycle is caught here and reported as a skipped
CheckResult. Nothing propagates to the trigger.
"""

import asyncio
from dataclasses import dataclass

from chains.providers import RPCProvider
from chains.signer import Signer
from core.constants import PegAction
from core.exceptions import ConfigurationError, ErrorCode, PegKeeperError
from core.logging import get_logger, log_error
from core.models import CheckResult, KeeperConfig, Token
from core.time import Clock, now_s
from execution.accounting import TradeLedger
from execution.executor import ExecutionEngine
from strategy.cooldown import CooldownTracker
from strategy.evaluator import evaluate_peg
from strategy.gates import apply_profitability_gates
from strategy.oracle import PriceOracle
from strategy.simulator import TradeSimulator
from venues.erc20 import ERC20Token
from venues.interfaces import (
    PegConverter,
    QuoteProvider,
    ReceiptSource,
    ReserveSource,
    SwapExecutor,
    TokenAccount,
)
from venues.pair import V2Pair
from venues.psm import DEFAULT_SELECTOR_STABLECOIN, PegStabilityModule
from venues.router import V2Router

logger = get_logger(__name__)


class SkipReason:
    """Check-level skip reasons (venue/gate failures use ErrorCode values)."""
    IN_FLIGHT = "IN_FLIGHT"
    COOLDOWN_ACTIVE = "COOLDOWN_ACTIVE"
    NO_BALANCE = "NO_BALANCE"


@dataclass
class VenueSet:
    """Capabilities the keeper trades through."""
    psm: PegConverter
    quoter: QuoteProvider
    swapper: SwapExecutor
    collateral: TokenAccount
    stablecoin: TokenAccount
    receipts: ReceiptSource
    reserves: ReserveSource | None = None


class PegKeeper:
    """
    Peg-stabilization agent for one PSM / one liquidity pair.

    Usage:
        keeper = PegKeeper(config, venues, operator_address)
        await keeper.initialize()
        result = await keeper.check_and_arbitrage()
    """

    def __init__(
        self,
        config: KeeperConfig,
        venues: VenueSet,
        operator: str,
        cooldown: CooldownTracker | None = None,
        ledger: TradeLedger | None = None,
        clock: Clock = now_s,
    ):
        self.config = config
        self.venues = venues
        self.operator = operator
        self.cooldown = cooldown or CooldownTracker(config.cooldown_seconds, clock=clock)
        self.ledger = ledger
        self._clock = clock
        self._in_flight = asyncio.Lock()

        self.collateral: Token | None = None
        self.stablecoin: Token | None = None
        self.oracle: PriceOracle | None = None
        self.simulator: TradeSimulator | None = None
        self.executor: ExecutionEngine | None = None

    @property
    def initialized(self) -> bool:
        return self.executor is not None

    async def initialize(self) -> None:
        """
        Read token decimals and build the pipeline components.

        Raises:
            ConfigurationError: stablecoin has fewer decimals than collateral
        """
        collateral_decimals = await self.venues.collateral.decimals()
        stablecoin_decimals = await self.venues.stablecoin.decimals()

        self.collateral = Token(self.venues.collateral.address, collateral_decimals)
        self.stablecoin = Token(self.venues.stablecoin.address, stablecoin_decimals)

        try:
            self.oracle = PriceOracle(self.venues.quoter, self.collateral, self.stablecoin)
            self.simulator = TradeSimulator(
                self.config,
                self.venues.quoter,
                self.venues.psm,
                self.collateral,
                self.stablecoin,
                reserves=self.venues.reserves,
            )
            self.executor = ExecutionEngine(
                self.config,
                self.operator,
                self.venues.psm,
                self.venues.swapper,
                self.venues.collateral,
                self.venues.stablecoin,
                self.collateral,
                self.stablecoin,
                self.venues.receipts,
                clock=self._clock,
            )
        except ValueError as e:
            raise ConfigurationError(
                str(e),
                details={
                    "collateral_decimals": collateral_decimals,
                    "stablecoin_decimals": stablecoin_decimals,
                },
            ) from e

        logger.info(
            "Peg keeper initialized",
            extra={"context": {
                "operator": self.operator,
                "collateral": self.collateral.address,
                "stablecoin": self.stablecoin.address,
                "collateral_decimals": collateral_decimals,
                "stablecoin_decimals": stablecoin_decimals,
                **self.config.to_log_context(),
            }},
        )

    async def check_and_arbitrage(self) -> CheckResult:
        """
        Run one check cycle. Never raises.

        Overlapping invocations return immediately as skipped.
        """
        if self._in_flight.locked():
            logger.info("Check already in flight, skipping")
            return CheckResult.skipped(SkipReason.IN_FLIGHT)

        async with self._in_flight:
            try:
                return await self._run_cycle()
            except PegKeeperError as e:
                log_error(
                    logger,
                    e.code.value,
                    e.message,
                    error_type=type(e).__name__,
                    details=e.details,
                )
                return CheckResult.skipped(e.code.value, error=e.to_dict())
            except Exception as e:
                logger.error(
                    f"Unexpected error in peg check: {e}",
                    extra={"context": {"error_type": type(e).__name__}},
                    exc_info=True,
                )
                return CheckResult.skipped(ErrorCode.UNKNOWN.value, error_message=str(e))

    async def _run_cycle(self) -> CheckResult:
        remaining = self.cooldown.remaining_cooldown()
        if remaining > 0:
            logger.debug(f"Cooldown active: {remaining:.0f}s remaining")
            return CheckResult.skipped(SkipReason.COOLDOWN_ACTIVE, remaining_seconds=remaining)

        if not self.initialized:
            await self.initialize()

        sample = await self.oracle.get_price()
        decision = evaluate_peg(sample.price, self.config)
        logger.info(
            f"Stablecoin price: {sample.price:.6f} -> {decision.action.value}",
            extra={"context": {
                "price": str(sample.price),
                "deviation_pct": str(decision.deviation_pct),
                "reason": decision.reason,
            }},
        )
        if decision.action == PegAction.NO_ACTION:
            return CheckResult.skipped(decision.reason, price=str(sample.price))

        balance = await self.venues.collateral.balance_of(self.operator)
        outcome = await self.simulator.simulate(decision.action, balance)
        if not outcome.has_plan:
            return CheckResult.skipped(SkipReason.NO_BALANCE, action=decision.action)

        plan = outcome.plan
        gate = apply_profitability_gates(plan, self.config.min_profit_percentage)
        if not gate.passed:
            return CheckResult.skipped(
                gate.reject_code.value,
                action=decision.action,
                **(gate.details or {}),
            )

        result = await self.executor.execute(plan)
        self.cooldown.record_execution()
        check = CheckResult(
            executed=True,
            profit=result.realized_profit,
            action=decision.action,
            details=result.to_dict(),
        )

        # Bookkeeping must not mask a trade that already moved funds
        if self.ledger is not None:
            try:
                self.ledger.record(result)
            except Exception as e:
                logger.error(
                    f"Ledger record failed for completed trade: {e}",
                    extra={"context": {
                        "trade_id": result.trade_id,
                        "error_type": type(e).__name__,
                    }},
                    exc_info=True,
                )

        return check


async def create_peg_keeper(
    config: KeeperConfig,
    provider: RPCProvider,
    signer: Signer,
    ledger: TradeLedger | None = None,
    stablecoin_selector: str = DEFAULT_SELECTOR_STABLECOIN,
) -> PegKeeper:
    """
    Wire on-chain bindings into an initialized PegKeeper.

    Token addresses come from the config overrides when set, otherwise from
    the PSM's gem() and stablecoin getter.
    """
    psm = PegStabilityModule(provider, signer, config.psm_address, stablecoin_selector)
    router = V2Router(provider, signer, config.router_address)

    try:
        collateral_address = config.collateral_token_address or await psm.gem()
        stablecoin_address = config.stablecoin_token_address or await psm.stablecoin()
    except PegKeeperError as e:
        raise ConfigurationError(
            f"PSM token lookup failed: {e.message}. Check psm_address and "
            f"stablecoin_selector, or set the token addresses explicitly",
            details={
                "psm_address": config.psm_address,
                "stablecoin_selector": stablecoin_selector,
                "cause": e.code.value,
            },
        ) from e

    venues = VenueSet(
        psm=psm,
        quoter=router,
        swapper=router,
        collateral=ERC20Token(provider, signer, collateral_address),
        stablecoin=ERC20Token(provider, signer, stablecoin_address),
        receipts=provider,
        reserves=V2Pair(provider, config.pair_address),
    )

    keeper = PegKeeper(config, venues, signer.address, ledger=ledger)
    await keeper.initialize()
    return keeper
