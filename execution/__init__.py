"""
execution/ - Trade execution.

Modules:
- state_machine: Execution states and valid transitions
- executor: Ordered approve / convert / swap sequences
- accounting: JSONL trade ledger
"""

from execution.accounting import TradeLedger, TradeRecord
from execution.executor import ExecutionEngine, ExecutionResult
from execution.state_machine import (
    VALID_TRANSITIONS,
    ExecutionState,
    ExecutionStateMachine,
    InvalidTransitionError,
    StateTransition,
)

__all__ = [
    # State machine
    "ExecutionState",
    "ExecutionStateMachine",
    "InvalidTransitionError",
    "StateTransition",
    "VALID_TRANSITIONS",
    # Executor
    "ExecutionEngine",
    "ExecutionResult",
    # Accounting
    "TradeLedger",
    "TradeRecord",
]
