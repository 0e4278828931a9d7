"""
Time sources for the allocation engine.

All window checks (voting period, timelock, grace period) are plain
comparisons against an external clock; the engine never schedules anything.
"""

import time
from abc import ABC, abstractmethod

from ..errors.exceptions import ValidationError


class Clock(ABC):
    """Monotonically non-decreasing source of integer timestamps (seconds)."""

    @abstractmethod
    def now(self) -> int:
        """Current timestamp."""
        pass


class SystemClock(Clock):
    """Wall-clock time, clamped so it never moves backwards."""

    def __init__(self):
        self._last = 0

    def now(self) -> int:
        current = max(int(time.time()), self._last)
        self._last = current
        return current


class ManualClock(Clock):
    """Clock advanced explicitly by the caller."""

    def __init__(self, start: int = 0):
        if start < 0:
            raise ValidationError("Clock cannot start before zero", field="start", value=start)
        self._now = start

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        """Move the clock forward by ``seconds`` and return the new time."""
        if seconds < 0:
            raise ValidationError(
                "Clock cannot move backwards", field="seconds", value=seconds
            )
        self._now += seconds
        return self._now

    def set(self, timestamp: int) -> int:
        """Jump to ``timestamp``, which must not be earlier than now."""
        if timestamp < self._now:
            raise ValidationError(
                "Clock cannot move backwards",
                field="timestamp",
                value=timestamp,
                expected=f">= {self._now}",
            )
        self._now = timestamp
        return self._now
