"""
strategy/cooldown.py - Minimum spacing between executed trades.
"""

from core.logging import get_logger
from core.time import Clock, now_s

logger = get_logger(__name__)


class CooldownTracker:
    """
    Tracks the time of the last executed trade.

    Only successful executions are recorded. A failed or skipped check
    never arms the cooldown.
    """

    def __init__(self, cooldown_seconds: float, clock: Clock = now_s):
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._last_execution: float | None = None

    @property
    def last_execution_time(self) -> float | None:
        return self._last_execution

    def record_execution(self, timestamp: float | None = None) -> None:
        self._last_execution = self._clock() if timestamp is None else timestamp
        logger.debug(
            "Cooldown armed",
            extra={"context": {
                "last_execution": self._last_execution,
                "cooldown_s": self.cooldown_seconds,
            }},
        )

    def remaining_cooldown(self, now: float | None = None) -> float:
        """Seconds until the next trade may run; 0 when never executed."""
        if self._last_execution is None:
            return 0
        current = self._clock() if now is None else now
        return max(0, self.cooldown_seconds - (current - self._last_execution))

    def is_active(self, now: float | None = None) -> bool:
        return self.remaining_cooldown(now) > 0

    def reset(self) -> None:
        self._last_execution = None
