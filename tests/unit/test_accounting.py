"""
tests/unit/test_accounting.py - JSONL trade ledger.
"""

import json

from core.constants import PegAction
from execution.accounting import TradeLedger, TradeRecord
from execution.executor import ExecutionResult
from execution.state_machine import ExecutionState


def make_result(realized: int = 2_000_000, expected: int = 2_100_000) -> ExecutionResult:
    return ExecutionResult(
        trade_id="abc123",
        direction=PegAction.RAISE_SUPPLY,
        state=ExecutionState.COMPLETED,
        amount_in=100 * 10**6,
        realized_profit=realized,
        expected_profit=expected,
        balance_before=1_000 * 10**6,
        balance_after=1_000 * 10**6 + realized,
        tx_hashes=["0x1", "0x2"],
    )


class TestTradeLedger:

    def test_memory_only_without_dir(self):
        ledger = TradeLedger()
        ledger.record(make_result())

        assert ledger.trades_file is None
        assert ledger.trade_count == 1
        assert ledger.load_records() == []

    def test_appends_jsonl(self, tmp_path):
        ledger = TradeLedger(tmp_path, session_id="s1")
        ledger.record(make_result())
        ledger.record(make_result(realized=-500))

        lines = (tmp_path / "peg_trades_s1.jsonl").read_text().splitlines()
        assert len(lines) == 2
        first = json.loads(lines[0])
        assert first["direction"] == "RAISE_SUPPLY"
        assert first["tx_hashes"] == ["0x1", "0x2"]

    def test_totals(self, tmp_path):
        ledger = TradeLedger(tmp_path)
        ledger.record(make_result(realized=2_000_000, expected=2_100_000))
        ledger.record(make_result(realized=-500, expected=1_000))

        summary = ledger.get_summary()
        assert summary["trade_count"] == 2
        assert summary["total_realized_profit"] == 1_999_500
        assert summary["total_expected_profit"] == 2_101_000

    def test_records_reload(self, tmp_path):
        ledger = TradeLedger(tmp_path)
        ledger.record(make_result())

        records = ledger.load_records()

        assert records == [TradeRecord(**records[0].to_dict())]
        assert records[0].realized_profit == 2_000_000
