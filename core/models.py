"""
core/models.py - Core data models.

All token amounts are int base units. NO FLOATS.
Prices and percentages are Decimal.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from core.constants import (
    DEFAULT_CONFIRMATION_TIMEOUT_SECONDS,
    DEFAULT_SWAP_DEADLINE_SECONDS,
    PEG_PRICE,
    PegAction,
)
from core.exceptions import ConfigurationError, ErrorCode


@dataclass(frozen=True)
class Token:
    """ERC20 token identity."""

    address: str
    decimals: int

    def __post_init__(self):
        if not (0 <= self.decimals <= 36):
            raise ValueError(f"Invalid decimals for {self.address}: {self.decimals}")


@dataclass(frozen=True)
class KeeperConfig:
    """
    Peg keeper configuration. Immutable for the lifetime of a run.

    Amounts are collateral base units; percentages are decimal percent
    (0.5 means 0.5%); slippage_tolerance is a fraction (0.005 means 0.5%).
    """

    psm_address: str
    router_address: str
    pair_address: str
    max_trade_amount: int
    min_profit_percentage: Decimal
    slippage_tolerance: Decimal
    cooldown_seconds: float
    peg_upper_limit: Decimal
    peg_lower_limit: Decimal

    swap_deadline_seconds: int = DEFAULT_SWAP_DEADLINE_SECONDS
    confirmation_timeout_seconds: float = DEFAULT_CONFIRMATION_TIMEOUT_SECONDS
    max_pool_share_percentage: Decimal | None = None

    # Optional overrides for the PSM token lookups
    collateral_token_address: str | None = None
    stablecoin_token_address: str | None = None

    def __post_init__(self):
        missing = [
            name
            for name in ("psm_address", "router_address", "pair_address")
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigurationError(
                f"Missing peg keeper configuration: {', '.join(missing)}",
                code=ErrorCode.CONFIG_MISSING_ADDRESS,
                details={"missing": missing},
            )

        if not (self.peg_lower_limit < PEG_PRICE < self.peg_upper_limit):
            raise ConfigurationError(
                "Peg band must straddle 1.0",
                code=ErrorCode.CONFIG_INVALID_BAND,
                details={
                    "peg_lower_limit": str(self.peg_lower_limit),
                    "peg_upper_limit": str(self.peg_upper_limit),
                },
            )

        if not (Decimal("0") <= self.slippage_tolerance < Decimal("1")):
            raise ConfigurationError(
                f"slippage_tolerance must be in [0, 1): {self.slippage_tolerance}",
                details={"slippage_tolerance": str(self.slippage_tolerance)},
            )

        if self.max_trade_amount <= 0:
            raise ConfigurationError(
                f"max_trade_amount must be positive: {self.max_trade_amount}",
                details={"max_trade_amount": self.max_trade_amount},
            )

        if self.min_profit_percentage < 0:
            raise ConfigurationError(
                f"min_profit_percentage must be >= 0: {self.min_profit_percentage}",
            )

        if self.cooldown_seconds < 0 or self.swap_deadline_seconds <= 0:
            raise ConfigurationError(
                "cooldown_seconds must be >= 0 and swap_deadline_seconds > 0",
                details={
                    "cooldown_seconds": self.cooldown_seconds,
                    "swap_deadline_seconds": self.swap_deadline_seconds,
                },
            )

        if self.confirmation_timeout_seconds <= 0:
            raise ConfigurationError(
                f"confirmation_timeout_seconds must be > 0: {self.confirmation_timeout_seconds}",
                details={"confirmation_timeout_seconds": self.confirmation_timeout_seconds},
            )

        if self.max_pool_share_percentage is not None and not (
            Decimal("0") < self.max_pool_share_percentage <= Decimal("100")
        ):
            raise ConfigurationError(
                f"max_pool_share_percentage must be in (0, 100]: {self.max_pool_share_percentage}",
            )

    def to_log_context(self) -> dict[str, Any]:
        return {
            "max_trade_amount": self.max_trade_amount,
            "min_profit_pct": str(self.min_profit_percentage),
            "slippage_tolerance": str(self.slippage_tolerance),
            "cooldown_s": self.cooldown_seconds,
            "peg_band": f"[{self.peg_lower_limit}, {self.peg_upper_limit}]",
        }


@dataclass(frozen=True)
class PriceSample:
    """Observed stablecoin price in collateral units."""

    price: Decimal
    collateral_in: int   # one normalized collateral unit
    stablecoin_out: int  # quoted output for that unit
    timestamp_ms: int


@dataclass(frozen=True)
class TradePlan:
    """
    Simulated two-leg trade. Created per evaluation, never persisted.

    RAISE_SUPPLY: collateral -> PSM mint -> stablecoin -> DEX -> collateral
    REDUCE_SUPPLY: collateral -> DEX -> stablecoin -> PSM redeem -> collateral
    """

    direction: PegAction
    amount_in: int
    expected_intermediate: int  # stablecoin between the legs
    expected_out: int           # collateral after both legs
    expected_profit: int
    profit_percentage: Decimal
    min_intermediate_out: int
    min_out: int
    balance_before: int

    @property
    def swap_min_out(self) -> int:
        """Slippage floor for the DEX leg of this direction."""
        if self.direction == PegAction.RAISE_SUPPLY:
            return self.min_out
        return self.min_intermediate_out

    def to_dict(self) -> dict[str, Any]:
        return {
            "direction": self.direction.value,
            "amount_in": self.amount_in,
            "expected_intermediate": self.expected_intermediate,
            "expected_out": self.expected_out,
            "expected_profit": self.expected_profit,
            "profit_percentage": str(self.profit_percentage),
            "min_intermediate_out": self.min_intermediate_out,
            "min_out": self.min_out,
            "balance_before": self.balance_before,
        }


@dataclass(frozen=True)
class CheckResult:
    """Result of one check_and_arbitrage invocation."""

    executed: bool
    profit: int = 0
    action: PegAction = PegAction.NO_ACTION
    reason: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def skipped(cls, reason: str, action: PegAction = PegAction.NO_ACTION, **details: Any) -> "CheckResult":
        return cls(executed=False, profit=0, action=action, reason=reason, details=details)

    def to_dict(self) -> dict[str, Any]:
        return {
            "executed": self.executed,
            "profit": self.profit,
            "action": self.action.value,
            "reason": self.reason,
            "details": self.details,
        }
