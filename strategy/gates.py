"""
strategy/gates.py - Profitability gates.

Gates validate a simulated TradePlan before it reaches execution.
Each gate returns GateResult(passed, reject_code, details).
"""

from decimal import Decimal
from typing import NamedTuple

from core.exceptions import ErrorCode
from core.logging import get_logger
from core.models import TradePlan

logger = get_logger(__name__)


# =============================================================================
# GATE RESULT
# =============================================================================

class GateResult(NamedTuple):
    """Result of a gate check."""
    passed: bool
    reject_code: ErrorCode | None = None
    details: dict | None = None


# =============================================================================
# INDIVIDUAL GATES
# =============================================================================

def gate_min_profit_percentage(plan: TradePlan, min_profit_percentage: Decimal) -> GateResult:
    """Reject if expected profit percentage is below the configured minimum."""
    if plan.profit_percentage < min_profit_percentage:
        return GateResult(
            passed=False,
            reject_code=ErrorCode.PNL_BELOW_THRESHOLD,
            details={
                "profit_percentage": str(plan.profit_percentage),
                "min_profit_percentage": str(min_profit_percentage),
            },
        )
    return GateResult(passed=True)


def gate_positive_profit(plan: TradePlan) -> GateResult:
    """Reject if expected profit is not strictly positive."""
    if plan.expected_profit <= 0:
        return GateResult(
            passed=False,
            reject_code=ErrorCode.PNL_NOT_POSITIVE,
            details={
                "expected_profit": plan.expected_profit,
                "amount_in": plan.amount_in,
            },
        )
    return GateResult(passed=True)


# =============================================================================
# GATE RUNNER
# =============================================================================

def apply_profitability_gates(plan: TradePlan, min_profit_percentage: Decimal) -> GateResult:
    """
    Run all profitability gates in order. First failure wins.

    With min_profit_percentage == 0 a zero-profit plan still fails on
    the positive-profit gate.
    """
    gates = (
        lambda: gate_min_profit_percentage(plan, min_profit_percentage),
        lambda: gate_positive_profit(plan),
    )

    for gate in gates:
        result = gate()
        if not result.passed:
            logger.info(
                f"Gate rejected {plan.direction.value}: {result.reject_code.value}",
                extra={"context": result.details},
            )
            return result

    return GateResult(passed=True)
