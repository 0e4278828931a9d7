"""
Timelock, redemption window and pause handling.

After the tally is finalized the redemption window is scheduled once:
shares become redeemable at ``global_redemption_start`` and stay redeemable
for ``grace_period`` seconds. Only after that window has closed may the
owner sweep leftover funds, so redemption and sweeping never overlap.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..errors.exceptions import PausedError, StateTransitionError
from .tally import MAX_UINT256


@dataclass
class RedemptionWindow:
    """Timelock delay followed by a bounded redemption period."""

    timelock_delay: int
    grace_period: int
    global_redemption_start: int = 0

    @property
    def is_scheduled(self) -> bool:
        return self.global_redemption_start != 0

    @property
    def end(self) -> int:
        """Last second at which redemption is allowed."""
        return self.global_redemption_start + self.grace_period

    def schedule(self, current_time: int) -> int:
        """Open the window ``timelock_delay`` after ``current_time``; once only."""
        if self.is_scheduled:
            raise StateTransitionError(
                "Redemption window already scheduled",
                current_state="scheduled",
                expected_state="unscheduled",
            )
        # Zero marks "unscheduled", so the start is never allowed to be 0.
        self.global_redemption_start = max(current_time + self.timelock_delay, 1)
        return self.global_redemption_start

    def has_started(self, current_time: int) -> bool:
        return self.is_scheduled and current_time >= self.global_redemption_start

    def is_open(self, current_time: int) -> bool:
        return self.has_started(current_time) and current_time <= self.end

    def has_expired(self, current_time: int) -> bool:
        return self.is_scheduled and current_time > self.end

    def withdraw_limit(self, current_time: int) -> int:
        """Zero outside the window, effectively unlimited inside it."""
        return MAX_UINT256 if self.is_open(current_time) else 0

    def get_status(self, current_time: int) -> Dict[str, Any]:
        """Get the window status at ``current_time``."""
        return {
            "scheduled": self.is_scheduled,
            "global_redemption_start": self.global_redemption_start,
            "redemption_end": self.end if self.is_scheduled else None,
            "current_time": current_time,
            "seconds_until_open": max(0, self.global_redemption_start - current_time)
            if self.is_scheduled
            else None,
            "is_open": self.is_open(current_time),
            "has_expired": self.has_expired(current_time),
        }


@dataclass
class PauseManager:
    """Emergency pause switch."""

    is_paused: bool = False
    pause_reason: Optional[str] = None
    paused_at: Optional[int] = None
    pause_initiator: Optional[str] = None

    def pause(self, reason: str, current_time: int, initiator: str) -> None:
        if self.is_paused:
            raise PausedError("Mechanism already paused", current_state="paused")
        self.is_paused = True
        self.pause_reason = reason
        self.paused_at = current_time
        self.pause_initiator = initiator

    def resume(self) -> None:
        if not self.is_paused:
            raise StateTransitionError(
                "Mechanism is not paused", current_state="running", expected_state="paused"
            )
        self.is_paused = False
        self.pause_reason = None
        self.paused_at = None
        self.pause_initiator = None

    def require_not_paused(self, operation: str) -> None:
        if self.is_paused:
            raise PausedError(
                f"Cannot {operation} while paused: {self.pause_reason}",
                current_state="paused",
                expected_state="running",
            )
