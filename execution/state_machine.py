"""
Peg trade execution state machine.

RAISE_SUPPLY:
  PENDING -> APPROVING -> CONVERTING -> APPROVING -> SWAPPING -> COMPLETED

REDUCE_SUPPLY:
  PENDING -> APPROVING -> SWAPPING -> APPROVING -> CONVERTING -> COMPLETED

Every submitted call (approval, PSM conversion, router swap) enters its
own state first, so the history doubles as the list of attempted steps.
Any non-terminal state may move to FAILED.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional


class ExecutionState(str, Enum):
    PENDING = "PENDING"        # plan accepted, nothing submitted
    APPROVING = "APPROVING"    # ERC20 approval submitted
    CONVERTING = "CONVERTING"  # PSM sellGem / buyGem submitted
    SWAPPING = "SWAPPING"      # router swap submitted
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


TERMINAL_STATES: FrozenSet[ExecutionState] = frozenset(
    {ExecutionState.COMPLETED, ExecutionState.FAILED}
)

# A leg (CONVERTING / SWAPPING) is followed by the next approval or by completion
_AFTER_LEG = frozenset({ExecutionState.APPROVING, ExecutionState.COMPLETED, ExecutionState.FAILED})

VALID_TRANSITIONS: Dict[ExecutionState, FrozenSet[ExecutionState]] = {
    ExecutionState.PENDING: frozenset({ExecutionState.APPROVING, ExecutionState.FAILED}),
    ExecutionState.APPROVING: frozenset(
        {ExecutionState.CONVERTING, ExecutionState.SWAPPING, ExecutionState.FAILED}
    ),
    ExecutionState.CONVERTING: _AFTER_LEG,
    ExecutionState.SWAPPING: _AFTER_LEG,
    ExecutionState.COMPLETED: frozenset(),
    ExecutionState.FAILED: frozenset(),
}


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class StateTransition:
    from_state: ExecutionState
    to_state: ExecutionState
    reason: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=_utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from_state": self.from_state.value,
            "to_state": self.to_state.value,
            "timestamp": self.timestamp,
            "reason": self.reason,
            "metadata": self.metadata,
        }


class InvalidTransitionError(Exception):
    """Transition not allowed from the current state."""


@dataclass
class ExecutionStateMachine:
    """Current state and transition history of one peg trade."""
    trade_id: str
    state: ExecutionState = ExecutionState.PENDING
    history: List[StateTransition] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: str = field(default_factory=_utc_now)

    def can_transition_to(self, new_state: ExecutionState) -> bool:
        return new_state in VALID_TRANSITIONS[self.state]

    def transition_to(
        self,
        new_state: ExecutionState,
        reason: str = "",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> StateTransition:
        """
        Move to `new_state` and record the transition.

        Raises:
            InvalidTransitionError: `new_state` is not reachable from the current state
        """
        if not self.can_transition_to(new_state):
            allowed = sorted(s.value for s in VALID_TRANSITIONS[self.state])
            raise InvalidTransitionError(
                f"Cannot transition from {self.state.value} to {new_state.value} "
                f"(allowed: {allowed})"
            )

        transition = StateTransition(self.state, new_state, reason, metadata or {})
        self.history.append(transition)
        self.state = new_state
        return transition

    def fail(self, reason: str, metadata: Optional[Dict[str, Any]] = None) -> StateTransition:
        if self.is_terminal:
            raise InvalidTransitionError(
                f"Trade {self.trade_id} already {self.state.value}"
            )
        return self.transition_to(ExecutionState.FAILED, reason=reason, metadata=metadata)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def is_success(self) -> bool:
        return self.state == ExecutionState.COMPLETED

    @property
    def steps(self) -> List[str]:
        """States entered for submitted calls, in order."""
        return [t.to_state.value for t in self.history if t.to_state not in TERMINAL_STATES]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trade_id": self.trade_id,
            "state": self.state.value,
            "is_terminal": self.is_terminal,
            "is_success": self.is_success,
            "created_at": self.created_at,
            "history": [t.to_dict() for t in self.history],
            "metadata": self.metadata,
        }
