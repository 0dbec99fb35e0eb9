"""
core/time.py - Clock helpers.

Cooldown and deadlines read time through these so tests can substitute
a fixed clock.
"""

import time
from typing import Callable

# Returns seconds since epoch
Clock = Callable[[], float]


def now_s() -> float:
    """Current time in seconds (Unix timestamp)."""
    return time.time()


def now_ms() -> int:
    """Current time in milliseconds (Unix timestamp)."""
    return int(time.time() * 1000)


def swap_deadline(window_seconds: int, now: float | None = None) -> int:
    """Unix deadline for a router swap, `window_seconds` from submission."""
    current = now_s() if now is None else now
    return int(current) + window_seconds
