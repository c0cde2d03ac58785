"""
Jerk detection over accelerometer samples.

A jerk is a sample whose acceleration magnitude exceeds a fixed threshold.
A cooldown after each jerk guarantees at most one event per window, whatever
the sensor's sampling rate.
"""

from __future__ import annotations

import math
import time
from typing import Callable, Optional

from models.motion import JerkEvent, MotionSample

# m/s^2, acceleration including gravity (resting device reads ~9.8)
JERK_THRESHOLD_MS2 = 25.0
JERK_COOLDOWN_S = 5.0


def compute_magnitude(sample: MotionSample) -> float:
    """Euclidean norm of the acceleration vector."""
    return math.sqrt(sample.ax ** 2 + sample.ay ** 2 + sample.az ** 2)


def detect_jerk(
    sample: MotionSample,
    last_jerk_at: Optional[float],
    now: float,
) -> Optional[JerkEvent]:
    """
    Decide whether a sample is a new jerk.

    Both comparisons are strict: a magnitude of exactly 25.0 does not fire,
    and a sample exactly 5s after the previous jerk is still in cooldown.

    Args:
        sample: Accelerometer reading.
        last_jerk_at: Time of the previous jerk (seconds), None if never fired.
        now: Current time (seconds).

    Returns:
        JerkEvent if the sample fires, else None.
    """
    magnitude = compute_magnitude(sample)
    if magnitude <= JERK_THRESHOLD_MS2:
        return None
    if last_jerk_at is not None and now - last_jerk_at <= JERK_COOLDOWN_S:
        return None
    return JerkEvent(magnitude=magnitude, occurred_at=now)


class JerkDetector:
    """
    Stateful wrapper around detect_jerk that remembers the last firing time.

    Only the last firing timestamp is retained; no sample history is kept.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._last_jerk_at: Optional[float] = None

    @property
    def last_jerk_at(self) -> Optional[float]:
        return self._last_jerk_at

    def process(self, sample: MotionSample) -> Optional[JerkEvent]:
        event = detect_jerk(sample, self._last_jerk_at, self._clock())
        if event is not None:
            self._last_jerk_at = event.occurred_at
        return event

    def reset(self) -> None:
        self._last_jerk_at = None
