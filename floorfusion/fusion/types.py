"""Data types for floor fusion.

This module defines the per-tick signal snapshot fed to the fusion engine,
the engine's mutable state, and the estimate it returns.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from floorfusion.fingerprinting.matcher import FingerprintMatch
from floorfusion.floors import Floor


class FloorSource(str, Enum):
    """Which rule of the cascade decided the floor on a tick."""

    UNCHANGED = "unchanged"
    IMU = "imu"
    WIFI = "wifi"
    ALTITUDE = "altitude"
    MANUAL = "manual"


@dataclass(frozen=True)
class SignalSnapshot:
    """Latest value of every signal source at the moment of a tick.

    Each field is None (or 0 for ``imu_delta``) when the source has no data;
    a missing signal never moves the floor.

    Attributes:
        imu_delta: Pending inertial floor delta (not yet consumed).
        wifi_match: Accepted fingerprint match, or None.
        gps_altitude: Absolute GPS altitude in meters.
        barometric_altitude: Meters above the ground floor.
        inside_building: Geofence result; None when coordinates are missing.
    """

    imu_delta: int = 0
    wifi_match: Optional[FingerprintMatch] = None
    gps_altitude: Optional[float] = None
    barometric_altitude: Optional[float] = None
    inside_building: Optional[bool] = None

    def __post_init__(self) -> None:
        if not isinstance(self.imu_delta, int):
            raise TypeError(f"imu_delta must be int, got {type(self.imu_delta).__name__}")

    @property
    def is_empty(self) -> bool:
        return (
            self.imu_delta == 0
            and self.wifi_match is None
            and self.gps_altitude is None
            and self.barometric_altitude is None
        )


@dataclass
class FusionState:
    """Mutable, in-memory state owned by one fusion session."""

    current_index: int = 0
    last_imu_delta: int = 0
    last_wifi_match: Optional[FingerprintMatch] = None
    last_gps_altitude: Optional[float] = None
    last_barometric_altitude: Optional[float] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    inside_building: Optional[bool] = None
    imu_confidence: float = 0.0
    last_source: FloorSource = FloorSource.UNCHANGED
    ticks: int = 0

    def reset(self, index: int = 0) -> None:
        self.current_index = index
        self.last_imu_delta = 0
        self.last_wifi_match = None
        self.last_gps_altitude = None
        self.last_barometric_altitude = None
        self.latitude = None
        self.longitude = None
        self.inside_building = None
        self.imu_confidence = 0.0
        self.last_source = FloorSource.UNCHANGED
        self.ticks = 0


@dataclass(frozen=True)
class FloorEstimate:
    """Result of one fusion tick."""

    index: int
    floor: Floor
    source: FloorSource
    changed: bool
