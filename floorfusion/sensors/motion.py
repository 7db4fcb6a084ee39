"""
Inertial floor-transition detection from accelerometer and gyroscope.

A deliberately coarse heuristic, not a step counter: a short rolling window
of acceleration and rotation magnitudes is classified as "stair-like motion"
and turned into a discrete floor delta.

    stair-like  := var(|a|) > accel_variance_threshold
                   AND mean(|ω|) > rotation_threshold
    delta       := +1 if mean(|a|) > up_threshold
                   -1 if mean(|a|) < down_threshold
                    0 otherwise

Detections are debounced (at most one every ``debounce_interval`` seconds).
The accumulated delta stays pending until the caller consumes it.
"""

import logging
import time
from collections import deque
from typing import Callable, Deque, Optional

import numpy as np

from floorfusion.config import MotionConfig
from floorfusion.sensors.providers import MotionProvider
from floorfusion.sensors.stream import SignalStream, Subscription
from floorfusion.sensors.types import MotionSample

logger = logging.getLogger(__name__)


def window_statistics(accel_window: np.ndarray, rotation_window: np.ndarray):
    """
    Mean and variance of acceleration magnitude, mean rotation magnitude.

    Args:
        accel_window: Acceleration magnitudes, shape (N,), m/s².
        rotation_window: Rotation-rate magnitudes, shape (N,), rad/s.

    Returns:
        Tuple (mean_accel, accel_variance, mean_rotation). Variance is the
        population variance over the window.
    """
    if accel_window.ndim != 1 or rotation_window.ndim != 1:
        raise ValueError("windows must be 1D arrays")
    if accel_window.size == 0:
        raise ValueError("windows must not be empty")

    return (
        float(np.mean(accel_window)),
        float(np.var(accel_window)),
        float(np.mean(rotation_window)),
    )


def classify_transition(
    mean_accel: float,
    accel_variance: float,
    mean_rotation: float,
    config: MotionConfig,
) -> int:
    """Floor delta (+1, -1 or 0) for one window of statistics."""
    stair_like = (
        accel_variance > config.accel_variance_threshold
        and mean_rotation > config.rotation_threshold
    )
    if not stair_like:
        return 0
    if mean_accel > config.up_threshold:
        return 1
    if mean_accel < config.down_threshold:
        return -1
    return 0


class FloorTransitionDetector:
    """
    Detect +1/-1 floor transitions from combined motion data.

    Attributes:
        floor_delta: Pending, not yet consumed, accumulated floor delta.
        confidence: Placeholder confidence (``detection_confidence`` after a
                    detection, 0 after consumption). Not computed from data.
        mean_accel, accel_variance, mean_rotation: Latest window statistics,
                    exposed for diagnostic display.

    Example:
        >>> detector = FloorTransitionDetector(provider)
        >>> detector.start()
        >>> ...                       # samples arrive at 10 Hz
        >>> delta = detector.consume_delta()
    """

    def __init__(
        self,
        provider: Optional[MotionProvider] = None,
        config: Optional[MotionConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.provider = provider
        self.config = config or MotionConfig()
        self.clock = clock

        self.floor_delta = 0
        self.confidence = 0.0
        self.mean_accel = 0.0
        self.accel_variance = 0.0
        self.mean_rotation = 0.0
        self.stream: SignalStream[int] = SignalStream("imu")

        self._accel: Deque[float] = deque(maxlen=self.config.window_size)
        self._rotation: Deque[float] = deque(maxlen=self.config.window_size)
        self._last_detection: Optional[float] = None
        self._subscription: Optional[Subscription] = None

    @property
    def is_running(self) -> bool:
        return self._subscription is not None

    def start(self) -> None:
        if self._subscription is not None or self.provider is None:
            return
        self.provider.set_update_interval(self.config.sample_interval)
        self._subscription = self.provider.add_listener(self.on_sample)
        logger.info("Motion listener started at %.0f Hz", 1.0 / self.config.sample_interval)

    def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.remove()
            self._subscription = None
            logger.info("Motion listener stopped")

    def reset(self) -> None:
        self.stop()
        self._accel.clear()
        self._rotation.clear()
        self._last_detection = None
        self.floor_delta = 0
        self.confidence = 0.0
        self.mean_accel = 0.0
        self.accel_variance = 0.0
        self.mean_rotation = 0.0
        self.stream.clear()

    def on_sample(self, sample: MotionSample) -> int:
        """
        Push one sample and run detection.

        Returns:
            The delta emitted by this sample (0 when nothing fired).
        """
        self._accel.append(sample.acceleration_magnitude)
        self._rotation.append(sample.rotation_magnitude)

        self.mean_accel, self.accel_variance, self.mean_rotation = window_statistics(
            np.asarray(self._accel), np.asarray(self._rotation)
        )

        now = self.clock()
        if (
            self._last_detection is not None
            and now - self._last_detection <= self.config.debounce_interval
        ):
            return 0

        delta = classify_transition(
            self.mean_accel, self.accel_variance, self.mean_rotation, self.config
        )
        if delta == 0:
            return 0

        self.floor_delta += delta
        self.confidence = self.config.detection_confidence
        self._last_detection = now
        logger.debug(
            "Floor transition %+d (mean=%.2f var=%.2f rot=%.2f)",
            delta, self.mean_accel, self.accel_variance, self.mean_rotation,
        )
        self.stream.publish(self.floor_delta)
        return delta

    def consume_delta(self) -> int:
        """Return the pending delta and clear it, with its confidence."""
        delta = self.floor_delta
        self.floor_delta = 0
        self.confidence = 0.0
        return delta
