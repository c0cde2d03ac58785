"""
Safety-check countdown state machine.

The timer only decides transitions; it owns no clock and schedules nothing.
A tick source (see ticker.py) calls tick() once per second, and the session
controller calls mark_safe()/force_trigger() on user action. This keeps every
transition testable without real time.

    IDLE --start()--> COUNTING --tick() at 1s left--> EXPIRED --reset()--> IDLE
                         |--force_trigger()---------> EXPIRED
                         +--mark_safe()--> RESOLVING_SAFE --reset()--> IDLE
"""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Callable, Optional

from models.countdown import CountdownState, CountdownStatus
from models.motion import Location

logger = logging.getLogger(__name__)

COUNTDOWN_SECONDS = 60


class SafetyCheckTimer:
    """
    Single countdown per monitoring session.

    Only start() leaves IDLE, and COUNTING can be left exactly once (expiry,
    force_trigger or mark_safe), so a countdown can never escalate twice.
    """

    def __init__(self, initial_seconds: int = COUNTDOWN_SECONDS, clock: Callable[[], float] = time.time):
        self._initial_seconds = initial_seconds
        self._clock = clock
        self._state = CountdownState()

    @property
    def state(self) -> CountdownState:
        return self._state

    @property
    def status(self) -> CountdownStatus:
        return self._state.status

    def start(self, reason: str = "manual") -> bool:
        """
        Enter COUNTING with a full countdown.

        Returns:
            False if a countdown already owns the session (re-entrant start ignored).
        """
        if self._state.status != CountdownStatus.IDLE:
            return False
        self._state = CountdownState(
            status=CountdownStatus.COUNTING,
            remaining_seconds=self._initial_seconds,
            captured_location=None,
            countdown_id=self._state.countdown_id + 1,
            started_at=self._clock(),
            trigger_reason=reason,
        )
        logger.info(f"Safety check #{self._state.countdown_id} started ({reason}), {self._initial_seconds}s")
        return True

    def tick(self) -> CountdownStatus:
        """
        Advance one second.

        A tick outside COUNTING is a no-op, so a late tick after cancellation
        cannot disturb the next state.
        """
        if self._state.status != CountdownStatus.COUNTING:
            return self._state.status
        if self._state.remaining_seconds <= 1:
            self._state = replace(self._state, status=CountdownStatus.EXPIRED, remaining_seconds=0)
            logger.warning(f"Safety check #{self._state.countdown_id} expired")
        else:
            self._state = replace(self._state, remaining_seconds=self._state.remaining_seconds - 1)
        return self._state.status

    def mark_safe(self) -> bool:
        if self._state.status != CountdownStatus.COUNTING:
            return False
        self._state = replace(self._state, status=CountdownStatus.RESOLVING_SAFE)
        logger.info(
            f"Safety check #{self._state.countdown_id} marked safe "
            f"with {self._state.remaining_seconds}s left"
        )
        return True

    def force_trigger(self) -> bool:
        if self._state.status != CountdownStatus.COUNTING:
            return False
        self._state = replace(self._state, status=CountdownStatus.EXPIRED)
        logger.warning(f"Safety check #{self._state.countdown_id} force-triggered")
        return True

    def set_location(self, countdown_id: int, location: Location) -> bool:
        """
        Record the fix captured for a countdown.

        Ignored if the countdown is no longer COUNTING, belongs to another
        countdown instance, or already has a location.
        """
        state = self._state
        if (
            state.status != CountdownStatus.COUNTING
            or state.countdown_id != countdown_id
            or state.captured_location is not None
        ):
            return False
        self._state = replace(state, captured_location=location)
        return True

    def reset(self) -> None:
        """Return to IDLE after a resolution (safe or expired) has been handled."""
        if self._state.status in (CountdownStatus.RESOLVING_SAFE, CountdownStatus.EXPIRED):
            self._state = CountdownState(countdown_id=self._state.countdown_id)

    def remaining(self) -> Optional[int]:
        if self._state.status != CountdownStatus.COUNTING:
            return None
        return self._state.remaining_seconds
