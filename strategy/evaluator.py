"""
strategy/evaluator.py - Peg band evaluation.

Two thresholds, applied in order:
1. Absolute deviation from 1.0 must reach min_profit_percentage before
   any simulation runs.
2. The band edges decide the direction. They need not equal
   1.0 +/- min_profit_percentage.
"""

from decimal import Decimal
from typing import NamedTuple

from core.constants import PegAction
from core.math import deviation_percentage
from core.models import KeeperConfig


class PegReason:
    """Standard evaluation reason codes."""
    DEVIATION_BELOW_MIN_PROFIT = "DEVIATION_BELOW_MIN_PROFIT"
    ABOVE_UPPER_LIMIT = "ABOVE_UPPER_LIMIT"
    BELOW_LOWER_LIMIT = "BELOW_LOWER_LIMIT"
    WITHIN_BAND = "WITHIN_BAND"


class PegDecision(NamedTuple):
    """Result of a peg evaluation."""
    action: PegAction
    price: Decimal
    deviation_pct: Decimal
    reason: str


def evaluate_peg(price: Decimal, config: KeeperConfig) -> PegDecision:
    """Select a trade direction for an observed price, or NO_ACTION."""
    deviation_pct = deviation_percentage(price)

    if deviation_pct < config.min_profit_percentage:
        return PegDecision(PegAction.NO_ACTION, price, deviation_pct, PegReason.DEVIATION_BELOW_MIN_PROFIT)

    if price > config.peg_upper_limit:
        return PegDecision(PegAction.RAISE_SUPPLY, price, deviation_pct, PegReason.ABOVE_UPPER_LIMIT)

    if price < config.peg_lower_limit:
        return PegDecision(PegAction.REDUCE_SUPPLY, price, deviation_pct, PegReason.BELOW_LOWER_LIMIT)

    return PegDecision(PegAction.NO_ACTION, price, deviation_pct, PegReason.WITHIN_BAND)
