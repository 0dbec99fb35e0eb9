"""
tests/unit/test_evaluator.py - Peg band evaluation.
"""

import pytest
from decimal import Decimal

from core.constants import PegAction
from strategy.evaluator import PegReason, evaluate_peg


class TestPegBand:
    """Direction is decided by the band edges."""

    @pytest.mark.parametrize("price", ["0.99", "0.995", "1", "1.005", "1.01"])
    def test_inside_band_is_no_action(self, config, price):
        decision = evaluate_peg(Decimal(price), config)
        assert decision.action == PegAction.NO_ACTION

    def test_above_upper_limit_raises_supply(self, config):
        decision = evaluate_peg(Decimal("1.02"), config)
        assert decision.action == PegAction.RAISE_SUPPLY
        assert decision.reason == PegReason.ABOVE_UPPER_LIMIT

    def test_below_lower_limit_reduces_supply(self, config):
        decision = evaluate_peg(Decimal("0.98"), config)
        assert decision.action == PegAction.REDUCE_SUPPLY
        assert decision.reason == PegReason.BELOW_LOWER_LIMIT

    def test_inside_band_above_filter_reports_within_band(self, config):
        """0.8% deviation passes the 0.5% filter but stays inside [0.99, 1.01]."""
        decision = evaluate_peg(Decimal("1.008"), config)
        assert decision.action == PegAction.NO_ACTION
        assert decision.reason == PegReason.WITHIN_BAND


class TestDeviationFilter:
    """Absolute deviation must reach min_profit_percentage first."""

    def test_small_deviation_outside_narrow_band_is_filtered(self, config_factory):
        config = config_factory(
            min_profit_percentage=Decimal("2"),
            peg_upper_limit=Decimal("1.001"),
            peg_lower_limit=Decimal("0.999"),
        )
        decision = evaluate_peg(Decimal("1.015"), config)
        assert decision.action == PegAction.NO_ACTION
        assert decision.reason == PegReason.DEVIATION_BELOW_MIN_PROFIT

    def test_deviation_reported_in_percent(self, config):
        decision = evaluate_peg(Decimal("0.97"), config)
        assert decision.deviation_pct == Decimal("3")

    def test_exact_threshold_is_not_filtered(self, config_factory):
        config = config_factory(
            min_profit_percentage=Decimal("2"),
            peg_upper_limit=Decimal("1.01"),
        )
        decision = evaluate_peg(Decimal("1.02"), config)
        assert decision.action == PegAction.RAISE_SUPPLY
