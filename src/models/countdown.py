"""
Countdown state owned by the safety-check timer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from .motion import Location


class CountdownStatus(str, Enum):
    IDLE = "idle"
    COUNTING = "counting"
    RESOLVING_SAFE = "resolving_safe"
    EXPIRED = "expired"


@dataclass(frozen=True)
class CountdownState:
    """
    Immutable snapshot of the safety-check countdown.

    Attributes:
        status: Current state machine status.
        remaining_seconds: Seconds left before escalation.
        captured_location: Fix captured when the countdown started (may arrive late).
        countdown_id: Increments every time the countdown enters COUNTING.
        started_at: Unix timestamp when COUNTING was entered.
        trigger_reason: What started the countdown ("jerk" or "manual").
    """
    status: CountdownStatus = CountdownStatus.IDLE
    remaining_seconds: int = 0
    captured_location: Optional[Location] = None
    countdown_id: int = 0
    started_at: Optional[float] = None
    trigger_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "remaining_seconds": self.remaining_seconds,
            "captured_location": self.captured_location.to_dict() if self.captured_location else None,
            "countdown_id": self.countdown_id,
            "started_at": self.started_at,
            "trigger_reason": self.trigger_reason,
        }
