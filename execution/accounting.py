"""
Trade ledger.

Post-trade record keeping:
- One JSONL line per executed trade
- Expected vs realized profit totals

Nothing is written when no output directory is configured; totals are
still tracked in memory.
"""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.logging import get_logger
from execution.executor import ExecutionResult

logger = get_logger(__name__)


@dataclass
class TradeRecord:
    """Single executed trade."""
    trade_id: str
    direction: str
    amount_in: int
    expected_profit: int
    realized_profit: int
    balance_before: int
    balance_after: int
    tx_hashes: List[str] = field(default_factory=list)
    timestamp: str = ""

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = datetime.now(timezone.utc).isoformat()

    @classmethod
    def from_result(cls, result: ExecutionResult) -> "TradeRecord":
        return cls(
            trade_id=result.trade_id,
            direction=result.direction.value,
            amount_in=result.amount_in,
            expected_profit=result.expected_profit,
            realized_profit=result.realized_profit,
            balance_before=result.balance_before,
            balance_after=result.balance_after,
            tx_hashes=list(result.tx_hashes),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TradeRecord":
        return cls(**data)


class TradeLedger:
    """
    Append-only record of executed trades.

    Usage:
        ledger = TradeLedger(Path("data/trades"))
        ledger.record(result)
    """

    def __init__(self, output_dir: Optional[Path] = None, session_id: Optional[str] = None):
        self._output_dir = output_dir
        self.session_id = session_id or datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        self.trades_file: Optional[Path] = None
        if output_dir is not None:
            output_dir.mkdir(parents=True, exist_ok=True)
            self.trades_file = output_dir / f"peg_trades_{self.session_id}.jsonl"

        self._records: List[TradeRecord] = []
        self._total_expected_profit = 0
        self._total_realized_profit = 0

    @property
    def trade_count(self) -> int:
        return len(self._records)

    @property
    def total_expected_profit(self) -> int:
        return self._total_expected_profit

    @property
    def total_realized_profit(self) -> int:
        return self._total_realized_profit

    def record(self, result: ExecutionResult) -> TradeRecord:
        """Record a completed trade and persist it if a file is configured."""
        record = TradeRecord.from_result(result)
        self._records.append(record)
        self._total_expected_profit += record.expected_profit
        self._total_realized_profit += record.realized_profit

        if self.trades_file is not None:
            with open(self.trades_file, "a") as f:
                f.write(json.dumps(record.to_dict()) + "\n")

        logger.info(
            f"Ledger: {record.direction} realized={record.realized_profit}",
            extra={"context": {"trade_id": record.trade_id, "trade_count": self.trade_count}},
        )
        return record

    def load_records(self) -> List[TradeRecord]:
        """Load persisted records for this session."""
        records: List[TradeRecord] = []
        if self.trades_file is None or not self.trades_file.exists():
            return records

        with open(self.trades_file, "r") as f:
            for line in f:
                if line.strip():
                    records.append(TradeRecord.from_dict(json.loads(line)))
        return records

    def get_summary(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "trades_file": str(self.trades_file) if self.trades_file else None,
            "trade_count": self.trade_count,
            "total_expected_profit": self._total_expected_profit,
            "total_realized_profit": self._total_realized_profit,
        }
