"""
tests/unit/test_peg_keeper.py - Top-level check: gating, idempotence, error containment.
"""

import asyncio

import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from core.constants import PegAction
from core.exceptions import ConfigurationError, ErrorCode, InfraError
from execution.accounting import TradeLedger
from strategy.cooldown import CooldownTracker
from strategy.evaluator import PegReason
from strategy.peg_keeper import PegKeeper, SkipReason, VenueSet


def build_keeper(config, chain, fakes, clock, price="1.02", balance=1_000 * 10**6,
                 ledger=None, stable_decimals=18):
    router = fakes.Router(chain, Decimal(price))
    usdc = fakes.Token(chain, fakes.usdc, 6)
    stable = fakes.Token(chain, fakes.stable, stable_decimals)
    venues = VenueSet(
        psm=fakes.PSM(chain),
        quoter=router,
        swapper=router,
        collateral=usdc,
        stablecoin=stable,
        receipts=fakes.Receipts(chain),
    )
    chain.mint(fakes.usdc, fakes.operator, balance)
    return PegKeeper(config, venues, fakes.operator, ledger=ledger, clock=clock)


class TestCheckAndArbitrage:

    @pytest.mark.asyncio
    async def test_executes_above_peg(self, config, chain, fakes, clock):
        keeper = build_keeper(config, chain, fakes, clock)

        result = await keeper.check_and_arbitrage()

        assert result.executed
        assert result.profit == 2 * 10**6
        assert result.action == PegAction.RAISE_SUPPLY
        assert keeper.cooldown.last_execution_time == clock.now

    @pytest.mark.asyncio
    async def test_executes_below_peg(self, config, chain, fakes, clock):
        keeper = build_keeper(config, chain, fakes, clock, price="0.98")

        result = await keeper.check_and_arbitrage()

        assert result.executed
        assert result.action == PegAction.REDUCE_SUPPLY
        assert result.profit == 2040816

    @pytest.mark.asyncio
    async def test_at_peg_does_nothing(self, config, chain, fakes, clock):
        keeper = build_keeper(config, chain, fakes, clock, price="1")

        result = await keeper.check_and_arbitrage()

        assert not result.executed
        assert result.profit == 0
        assert result.reason == PegReason.DEVIATION_BELOW_MIN_PROFIT
        assert chain.calls == []

    @pytest.mark.asyncio
    async def test_zero_balance_is_no_action(self, config, chain, fakes, clock):
        keeper = build_keeper(config, chain, fakes, clock, balance=0)

        result = await keeper.check_and_arbitrage()

        assert not result.executed
        assert result.reason == SkipReason.NO_BALANCE
        assert chain.calls == []

    @pytest.mark.asyncio
    async def test_gate_rejection_skips(self, config_factory, chain, fakes, clock):
        config = config_factory(min_profit_percentage=Decimal("3"))
        keeper = build_keeper(config, chain, fakes, clock, price="1.035")
        keeper.venues.quoter.get_amounts_out = AsyncMock(
            side_effect=[[10**6, 966183574879227053140], [100 * 10**18, 101 * 10**6]]
        )

        result = await keeper.check_and_arbitrage()

        assert not result.executed
        assert result.reason == ErrorCode.PNL_BELOW_THRESHOLD.value
        assert result.action == PegAction.RAISE_SUPPLY
        assert chain.calls == []


class TestCooldownGating:

    @pytest.mark.asyncio
    async def test_second_check_within_cooldown_does_not_execute(self, config, chain, fakes, clock):
        keeper = build_keeper(config, chain, fakes, clock)

        first = await keeper.check_and_arbitrage()
        clock.advance(config.cooldown_seconds - 1)
        second = await keeper.check_and_arbitrage()

        assert first.executed
        assert not second.executed
        assert second.reason == SkipReason.COOLDOWN_ACTIVE
        assert chain.call_names.count("sell_gem") == 1

    @pytest.mark.asyncio
    async def test_executes_again_after_cooldown(self, config, chain, fakes, clock):
        keeper = build_keeper(config, chain, fakes, clock)

        await keeper.check_and_arbitrage()
        clock.advance(config.cooldown_seconds)
        again = await keeper.check_and_arbitrage()

        assert again.executed

    @pytest.mark.asyncio
    async def test_cooldown_checked_before_price(self, config, chain, fakes, clock):
        keeper = build_keeper(config, chain, fakes, clock)
        keeper.cooldown.record_execution()
        keeper.venues.quoter.get_amounts_out = AsyncMock()

        result = await keeper.check_and_arbitrage()

        assert result.reason == SkipReason.COOLDOWN_ACTIVE
        keeper.venues.quoter.get_amounts_out.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_execution_leaves_cooldown_unarmed(self, config, chain, fakes, clock):
        keeper = build_keeper(config, chain, fakes, clock)
        keeper.venues.receipts.timeout_on = ("swap",)

        result = await keeper.check_and_arbitrage()

        assert not result.executed
        assert result.reason == ErrorCode.EXEC_TIMEOUT.value
        assert keeper.cooldown.remaining_cooldown() == 0

    @pytest.mark.asyncio
    async def test_injected_cooldown_tracker(self, config, chain, fakes, clock):
        keeper = build_keeper(config, chain, fakes, clock)
        tracker = CooldownTracker(10, clock=clock)
        keeper.cooldown = tracker

        await keeper.check_and_arbitrage()

        assert tracker.last_execution_time == clock.now


class TestInFlightGuard:

    @pytest.mark.asyncio
    async def test_overlapping_check_is_skipped(self, config, chain, fakes, clock):
        keeper = build_keeper(config, chain, fakes, clock)
        release = asyncio.Event()
        original = keeper.venues.collateral.balance_of

        async def slow_balance(owner):
            await release.wait()
            return await original(owner)

        keeper.venues.collateral.balance_of = slow_balance

        first = asyncio.create_task(keeper.check_and_arbitrage())
        await asyncio.sleep(0)
        second = await keeper.check_and_arbitrage()
        release.set()
        first_result = await first

        assert second.reason == SkipReason.IN_FLIGHT
        assert not second.executed
        assert first_result.executed


class TestErrorContainment:

    @pytest.mark.asyncio
    async def test_oracle_failure_returns_not_executed(self, config, chain, fakes, clock):
        keeper = build_keeper(config, chain, fakes, clock)
        keeper.venues.quoter.quote_error = InfraError("execution reverted")

        result = await keeper.check_and_arbitrage()

        assert not result.executed
        assert result.profit == 0
        assert result.reason == ErrorCode.ORACLE_QUOTE_REVERT.value
        assert result.details["error"]["error_type"] == "OracleFailure"

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_contained(self, config, chain, fakes, clock):
        keeper = build_keeper(config, chain, fakes, clock)
        keeper.venues.collateral.balance_of = AsyncMock(side_effect=RuntimeError("boom"))

        result = await keeper.check_and_arbitrage()

        assert not result.executed
        assert result.reason == ErrorCode.UNKNOWN.value

    @pytest.mark.asyncio
    async def test_bad_decimals_is_configuration_error(self, config, chain, fakes, clock):
        keeper = build_keeper(config, chain, fakes, clock, stable_decimals=4)

        with pytest.raises(ConfigurationError):
            await keeper.initialize()

        result = await keeper.check_and_arbitrage()
        assert result.reason == ErrorCode.CONFIG_INVALID_VALUE.value


class TestLedger:

    @pytest.mark.asyncio
    async def test_executed_trade_is_recorded(self, config, chain, fakes, clock, tmp_path):
        ledger = TradeLedger(tmp_path)
        keeper = build_keeper(config, chain, fakes, clock, ledger=ledger)

        await keeper.check_and_arbitrage()

        assert ledger.trade_count == 1
        assert ledger.total_realized_profit == 2 * 10**6
        assert len(ledger.load_records()) == 1

    @pytest.mark.asyncio
    async def test_ledger_failure_still_reports_executed(self, config, chain, fakes, clock):
        ledger = MagicMock()
        ledger.record.side_effect = OSError("disk full")
        keeper = build_keeper(config, chain, fakes, clock, ledger=ledger)

        result = await keeper.check_and_arbitrage()

        assert result.executed
        assert result.profit == 2 * 10**6
        assert result.action == PegAction.RAISE_SUPPLY
        assert keeper.cooldown.last_execution_time == clock.now
        assert chain.call_names == ["approve", "sell_gem", "approve", "swap"]
        ledger.record.assert_called_once()
