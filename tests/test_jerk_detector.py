"""
Tests for jerk detection: threshold, cooldown and magnitude.
"""

import math
import random

import pytest

from detection.jerk import (
    JERK_COOLDOWN_S,
    JERK_THRESHOLD_MS2,
    JerkDetector,
    compute_magnitude,
    detect_jerk,
)
from models.motion import MotionSample


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class TestMagnitude:
    def test_single_axis(self):
        assert compute_magnitude(MotionSample(0.0, 0.0, 9.81)) == pytest.approx(9.81)

    def test_three_axes(self):
        assert compute_magnitude(MotionSample(3.0, 4.0, 12.0)) == pytest.approx(13.0)

    def test_missing_axes_read_as_zero(self):
        sample = MotionSample.from_dict({"ax": None, "ay": 20.0, "az": 15.0})
        assert compute_magnitude(sample) == pytest.approx(25.0)


class TestThreshold:
    def test_exactly_threshold_does_not_fire(self):
        """Magnitude 25.0 is not a jerk (strict >)."""
        sample = MotionSample(15.0, 20.0, 0.0)
        assert compute_magnitude(sample) == JERK_THRESHOLD_MS2
        assert detect_jerk(sample, last_jerk_at=None, now=100.0) is None

    def test_just_above_threshold_fires(self):
        event = detect_jerk(MotionSample(25.0001, 0.0, 0.0), last_jerk_at=None, now=100.0)
        assert event is not None
        assert event.magnitude == pytest.approx(25.0001)
        assert event.occurred_at == 100.0

    def test_resting_device_never_fires(self):
        detector = JerkDetector(clock=FakeClock())
        for _ in range(100):
            assert detector.process(MotionSample(0.1, 0.2, 9.8)) is None


class TestCooldown:
    def test_second_jerk_inside_window_suppressed(self):
        clock = FakeClock(1000.0)
        detector = JerkDetector(clock=clock)
        assert detector.process(MotionSample(30.0, 0.0, 0.0)) is not None

        clock.now += 4.999
        assert detector.process(MotionSample(30.0, 0.0, 0.0)) is None

    def test_exactly_cooldown_still_suppressed(self):
        event = detect_jerk(MotionSample(30.0, 0.0, 0.0), last_jerk_at=100.0, now=100.0 + JERK_COOLDOWN_S)
        assert event is None

    def test_fires_again_after_cooldown(self):
        clock = FakeClock(1000.0)
        detector = JerkDetector(clock=clock)
        detector.process(MotionSample(30.0, 0.0, 0.0))

        clock.now += JERK_COOLDOWN_S + 0.001
        event = detector.process(MotionSample(30.0, 0.0, 0.0))
        assert event is not None
        assert detector.last_jerk_at == clock.now

    def test_suppressed_sample_does_not_extend_window(self):
        clock = FakeClock(1000.0)
        detector = JerkDetector(clock=clock)
        detector.process(MotionSample(30.0, 0.0, 0.0))

        clock.now += 3.0
        detector.process(MotionSample(30.0, 0.0, 0.0))
        clock.now += 2.5
        assert detector.process(MotionSample(30.0, 0.0, 0.0)) is not None

    def test_at_most_one_event_per_window_for_any_rate(self):
        """No two emitted events are closer than the cooldown, at any sample rate."""
        rng = random.Random(42)
        for rate_hz in (5, 60, 200):
            clock = FakeClock(0.0)
            detector = JerkDetector(clock=clock)
            emitted = []
            for _ in range(rate_hz * 30):
                clock.now += 1.0 / rate_hz
                magnitude = rng.uniform(0.0, 60.0)
                angle = rng.uniform(0.0, math.pi)
                sample = MotionSample(magnitude * math.cos(angle), magnitude * math.sin(angle), 0.0)
                event = detector.process(sample)
                if event is not None:
                    emitted.append(event.occurred_at)

            assert emitted, f"expected at least one jerk at {rate_hz} Hz"
            gaps = [b - a for a, b in zip(emitted, emitted[1:])]
            assert all(gap > JERK_COOLDOWN_S for gap in gaps)

    def test_reset_clears_cooldown(self):
        clock = FakeClock(1000.0)
        detector = JerkDetector(clock=clock)
        detector.process(MotionSample(30.0, 0.0, 0.0))
        detector.reset()
        assert detector.last_jerk_at is None
        assert detector.process(MotionSample(30.0, 0.0, 0.0)) is not None
