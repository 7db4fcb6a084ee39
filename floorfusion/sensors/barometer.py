"""
Barometric altitude relative to a calibrated ground-floor reference.

This module converts raw pressure readings into meters above the ground floor
and keeps that reference anchored against GPS:
    - Linear low-altitude approximation of the barometric formula
    - Ground reference capture (first stable reading or explicit calibration)
    - Rate-limited recalibration against GPS altitude, outdoors or on the
      ground floor indoors

State machine (``BarometerStatus``):

    UNINITIALIZED --start()--> AWAITING_REFERENCE --anchor--> CALIBRATED
          |                                                     |
          +--> UNAVAILABLE (no hardware)      recalibration loop+
          +--> ERROR (provider raised)

Units:
    - pressure: hPa
    - altitude: meters, positive = above the ground floor
"""

import logging
import time
from collections import deque
from typing import Callable, Deque, Optional

import numpy as np

from floorfusion.config import BarometerConfig
from floorfusion.errors import BarometerStatus, FloorFusionError
from floorfusion.sensors.providers import BarometerProvider
from floorfusion.sensors.stream import SignalStream, Subscription
from floorfusion.sensors.types import PressureReading

logger = logging.getLogger(__name__)

LAPSE_M_PER_HPA = 8.5


def pressure_to_relative_altitude(
    pressure: float,
    ground_pressure: float,
    lapse: float = LAPSE_M_PER_HPA,
) -> float:
    """
    Convert a pressure reading to altitude above the ground floor.

    Linear approximation of the barometric formula, valid for the few tens of
    meters spanned by a building:
        h = (p_ground - p) * lapse

    Near sea level pressure falls by roughly 0.12 hPa per meter, so the lapse
    constant is about 8.5 m/hPa.

    Args:
        pressure: Current pressure. Units: hPa. Must be positive.
        ground_pressure: Pressure at the ground-floor reference. Units: hPa.
        lapse: Meters per hPa of pressure difference. Default: 8.5.

    Returns:
        Relative altitude in meters (positive above ground).

    Raises:
        ValueError: If either pressure is not positive.

    Example:
        >>> pressure_to_relative_altitude(1012.0, 1013.0)
        8.5
        >>> pressure_to_relative_altitude(1013.0, 1013.0)
        0.0
    """
    if pressure <= 0:
        raise ValueError(f"pressure must be positive, got {pressure}")
    if ground_pressure <= 0:
        raise ValueError(f"ground_pressure must be positive, got {ground_pressure}")

    return (ground_pressure - pressure) * lapse


def ground_pressure_for(pressure: float, altitude: float, lapse: float = LAPSE_M_PER_HPA) -> float:
    """Ground reference pressure that makes ``pressure`` read as ``altitude``."""
    return pressure + altitude / lapse


class BarometricAltitudeEstimator:
    """
    Relative altitude from a barometer with GPS-assisted drift correction.

    Weather and HVAC move the absolute pressure over minutes to hours, so the
    ground reference is re-anchored whenever GPS gives a trustworthy altitude:

    (a) Outdoors: if the GPS-vs-barometric offset is above
        ``outdoor_min_offset`` (3 m) and below ``outdoor_max_offset`` (20 m,
        beyond that the GPS fix is taken to be a noise spike), the reference
        is shifted so that the barometric altitude equals the GPS altitude
        above ground.
    (b) Indoors on the ground floor: if the offset exceeds
        ``indoor_ground_min_offset`` (5 m) and GPS is within
        ``indoor_ground_gps_tolerance`` (15 m) of the ground-floor altitude,
        the current pressure becomes the ground reference.

    Recalibration happens at most once per ``recalibration_interval`` (30 s).

    Args:
        provider: Barometer provider.
        config: Estimator parameters.
        clock: Monotonic time source in seconds.

    Example:
        >>> est = BarometricAltitudeEstimator(provider)
        >>> await est.start()
        >>> est.calibrate(0.0)          # user stands on the ground floor
        >>> est.relative_altitude       # meters above ground, or None
    """

    def __init__(
        self,
        provider: BarometerProvider,
        config: Optional[BarometerConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.provider = provider
        self.config = config or BarometerConfig()
        self.clock = clock

        self.status = BarometerStatus.UNINITIALIZED
        self.error: Optional[str] = None
        self.pressure: Optional[float] = None
        self.ground_pressure: Optional[float] = None
        self.relative_altitude: Optional[float] = None
        self.last_calibration_time: Optional[float] = None
        self.last_calibration_altitude: Optional[float] = None
        self.stream: SignalStream[float] = SignalStream("barometer")

        self._subscription: Optional[Subscription] = None
        self._recent: Deque[float] = deque(maxlen=max(1, self.config.stable_samples))

    @property
    def is_running(self) -> bool:
        return self._subscription is not None

    @property
    def is_unavailable(self) -> bool:
        """True once the hardware is confirmed missing or the provider failed."""
        return self.status in (BarometerStatus.UNAVAILABLE, BarometerStatus.ERROR)

    async def start(self) -> BarometerStatus:
        """Check availability and subscribe. Safe to call when already running."""
        if self._subscription is not None:
            return self.status

        self.error = None
        try:
            available = await self.provider.is_available()
        except FloorFusionError as exc:
            self.status = BarometerStatus.ERROR
            self.error = str(exc) or "Failed to start barometer"
            logger.warning("Barometer availability check failed: %s", self.error)
            return self.status

        if not available:
            self.status = BarometerStatus.UNAVAILABLE
            self.error = "Barometer not available on this device"
            logger.warning(self.error)
            return self.status

        try:
            self._subscription = self.provider.add_listener(self.on_reading)
            self.provider.set_update_interval(self.config.update_interval)
        except FloorFusionError as exc:
            self.stop()
            self.status = BarometerStatus.ERROR
            self.error = str(exc) or "Failed to start barometer"
            logger.warning("Barometer subscription failed: %s", self.error)
            return self.status

        self.status = (
            BarometerStatus.CALIBRATED
            if self.ground_pressure is not None
            else BarometerStatus.AWAITING_REFERENCE
        )
        logger.info("Barometer started (status=%s)", self.status.value)
        return self.status

    def stop(self) -> None:
        """Remove the subscription. The ground reference is kept."""
        if self._subscription is not None:
            self._subscription.remove()
            self._subscription = None
            logger.info("Barometer stopped")

    def reset(self) -> None:
        """Forget pressure, reference and calibration history."""
        self.stop()
        self.status = BarometerStatus.UNINITIALIZED
        self.error = None
        self.pressure = None
        self.ground_pressure = None
        self.relative_altitude = None
        self.last_calibration_time = None
        self.last_calibration_altitude = None
        self._recent.clear()
        self.stream.clear()

    def on_reading(self, reading: PressureReading) -> None:
        """Provider callback."""
        self.pressure = reading.pressure_hpa
        self._recent.append(reading.pressure_hpa)

        if self.ground_pressure is None and self.config.auto_anchor and self._is_stable():
            self._anchor(reading.pressure_hpa, 0.0)
            logger.info("Ground reference captured from stable reading %.2f hPa", reading.pressure_hpa)

        if self.ground_pressure is not None:
            self.relative_altitude = pressure_to_relative_altitude(
                reading.pressure_hpa, self.ground_pressure, self.config.lapse_m_per_hpa
            )
            self.stream.publish(self.relative_altitude)

    def _is_stable(self) -> bool:
        if len(self._recent) < self._recent.maxlen:
            return False
        return float(np.ptp(np.asarray(self._recent))) <= self.config.stable_tolerance_hpa

    def _anchor(self, pressure: float, altitude: float) -> None:
        self.ground_pressure = ground_pressure_for(pressure, altitude, self.config.lapse_m_per_hpa)
        self.relative_altitude = altitude
        self.last_calibration_time = self.clock()
        self.last_calibration_altitude = altitude
        self.status = BarometerStatus.CALIBRATED

    def calibrate(self, known_altitude: float = 0.0, pressure: Optional[float] = None) -> bool:
        """
        Anchor the ground reference so the current reading equals ``known_altitude``.

        Args:
            known_altitude: Altitude above ground at the current position.
                            0.0 when the user is on the ground floor.
            pressure: Pressure to anchor on. Default: latest reading.

        Returns:
            False if no pressure is known yet, True otherwise.
        """
        p = pressure if pressure is not None else self.pressure
        if p is None:
            return False
        self._anchor(p, known_altitude)
        logger.info(
            "Barometer calibrated: %.2f hPa reads as %.2f m", p, known_altitude
        )
        return True

    def maybe_recalibrate(
        self,
        gps_altitude: Optional[float],
        inside_building: Optional[bool],
        on_ground_floor: bool,
        ground_altitude: float = 0.0,
    ) -> bool:
        """
        Re-anchor against GPS when the policy allows it.

        Args:
            gps_altitude: Absolute GPS altitude in meters, or None.
            inside_building: Geofence result; None when unknown.
            on_ground_floor: True if fusion currently places the user on the
                             ground floor.
            ground_altitude: Absolute GPS altitude of the ground floor.

        Returns:
            True if the reference was moved.
        """
        if gps_altitude is None or self.pressure is None or self.relative_altitude is None:
            return False

        now = self.clock()
        if (
            self.last_calibration_time is not None
            and now - self.last_calibration_time < self.config.recalibration_interval
        ):
            return False

        gps_relative = gps_altitude - ground_altitude
        offset = gps_relative - self.relative_altitude
        cfg = self.config

        if inside_building is False:
            if cfg.outdoor_min_offset < abs(offset) < cfg.outdoor_max_offset:
                self._anchor(self.pressure, gps_relative)
                logger.info("Outdoor recalibration: offset %.2f m corrected", offset)
                self.stream.publish(self.relative_altitude)
                return True
            return False

        if inside_building and on_ground_floor:
            if (
                abs(offset) > cfg.indoor_ground_min_offset
                and abs(gps_relative) <= cfg.indoor_ground_gps_tolerance
            ):
                self._anchor(self.pressure, 0.0)
                logger.info("Ground-floor recalibration: offset %.2f m corrected", offset)
                self.stream.publish(self.relative_altitude)
                return True

        return False
