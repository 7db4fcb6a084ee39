"""Unit tests for floorfusion/sensors/motion.py (IMU floor-transition detector).

Run with: pytest tests/floorfusion/sensors/test_floor_transition.py -v
"""

import numpy as np
import pytest

from floorfusion.config import MotionConfig
from floorfusion.sensors.motion import (
    FloorTransitionDetector,
    classify_transition,
    window_statistics,
)
from floorfusion.sensors.types import MotionSample
from floorfusion.sim.providers import ManualClock, SimulatedMotionProvider


def sample(accel_z, rotation=0.0):
    return MotionSample(np.array([0.0, 0.0, accel_z]), np.array([rotation, 0.0, 0.0]))


def stair_samples(base, n=10, swing=2.5, rotation=0.9):
    """Alternating magnitudes with variance swing**2 around ``base``."""
    return [sample(base + (swing if i % 2 else -swing), rotation) for i in range(n)]


class TestWindowStatistics:
    def test_values(self):
        mean, var, rot = window_statistics(np.array([8.0, 12.0]), np.array([0.5, 1.5]))
        assert mean == pytest.approx(10.0)
        assert var == pytest.approx(4.0)
        assert rot == pytest.approx(1.0)

    def test_rejects_empty_and_2d(self):
        with pytest.raises(ValueError):
            window_statistics(np.array([]), np.array([]))
        with pytest.raises(ValueError):
            window_statistics(np.ones((2, 2)), np.ones(2))


class TestClassifyTransition:
    config = MotionConfig()

    @pytest.mark.parametrize(
        "mean,var,rot,expected",
        [
            (13.0, 3.0, 0.8, 1),
            (7.0, 3.0, 0.8, -1),
            (10.0, 3.0, 0.8, 0),
            (13.0, 1.0, 0.8, 0),
            (13.0, 3.0, 0.3, 0),
            (12.0, 3.0, 0.8, 0),
            (8.0, 3.0, 0.8, 0),
        ],
    )
    def test_thresholds(self, mean, var, rot, expected):
        assert classify_transition(mean, var, rot, self.config) == expected


class TestFloorTransitionDetector:
    def test_climbing_emits_plus_one(self):
        detector = FloorTransitionDetector(config=MotionConfig(), clock=ManualClock())
        deltas = [detector.on_sample(s) for s in stair_samples(13.5)]
        assert sum(deltas) == 1
        assert detector.floor_delta == 1
        assert detector.confidence == pytest.approx(0.8)
        assert detector.stream.latest == 1

    def test_descending_emits_minus_one(self):
        detector = FloorTransitionDetector(clock=ManualClock())
        for s in stair_samples(6.5):
            detector.on_sample(s)
        assert detector.floor_delta == -1

    def test_level_walking_emits_nothing(self):
        detector = FloorTransitionDetector(clock=ManualClock())
        for s in stair_samples(9.81, swing=0.5, rotation=0.2):
            detector.on_sample(s)
        assert detector.floor_delta == 0
        assert detector.confidence == 0.0
        assert detector.mean_accel == pytest.approx(9.81)

    def test_debounce_suppresses_repeat_detections(self):
        clock = ManualClock()
        detector = FloorTransitionDetector(clock=clock)
        for s in stair_samples(13.5, n=30):
            clock.advance(0.1)
            detector.on_sample(s)
        # 3 s of climbing: one detection, then at most one more after 2 s
        assert detector.floor_delta == 2

    def test_delta_accumulates_until_consumed(self):
        clock = ManualClock()
        detector = FloorTransitionDetector(clock=clock)
        for s in stair_samples(13.5):
            detector.on_sample(s)
        clock.advance(2.5)
        for s in stair_samples(13.5):
            detector.on_sample(s)
        assert detector.floor_delta == 2

        assert detector.consume_delta() == 2
        assert detector.floor_delta == 0
        assert detector.confidence == 0.0
        assert detector.consume_delta() == 0

    def test_start_and_stop_with_provider(self):
        provider = SimulatedMotionProvider()
        detector = FloorTransitionDetector(provider, clock=ManualClock())
        detector.start()
        detector.start()
        assert provider.listener_count == 1
        assert provider.update_interval == pytest.approx(0.1)

        for s in stair_samples(13.5):
            provider.emit(s)
        assert detector.floor_delta == 1

        detector.stop()
        assert provider.listener_count == 0
        assert not detector.is_running

    def test_start_without_provider_is_noop(self):
        detector = FloorTransitionDetector()
        detector.start()
        assert not detector.is_running

    def test_reset(self):
        provider = SimulatedMotionProvider()
        detector = FloorTransitionDetector(provider, clock=ManualClock())
        detector.start()
        for s in stair_samples(13.5):
            provider.emit(s)
        detector.reset()
        assert detector.floor_delta == 0
        assert provider.listener_count == 0
        assert detector.stream.latest is None
