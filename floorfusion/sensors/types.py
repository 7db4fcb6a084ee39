"""
Sensor reading types for floor localization.

Each provider delivers one of these immutable packets per callback. Fields
that a device may fail to report (altitude on a coarse fix, accuracy on some
platforms) are Optional rather than defaulted, so downstream code can keep
"no data" distinct from a measured zero.

Units:
    - latitude / longitude: degrees (WGS-84)
    - altitude, accuracy: meters
    - pressure: hPa
    - acceleration: m/s² (including gravity)
    - rotation rate: rad/s
    - timestamp: seconds, monotonic clock of the producer
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np


@dataclass(frozen=True)
class LocationFix:
    """
    One location callback from the location provider.

    Attributes:
        latitude: Degrees, or None if the fix carries no position.
        longitude: Degrees, or None.
        altitude: Meters above the provider's datum (absolute convention),
                  or None when the fix has no vertical component.
        altitude_accuracy: Vertical accuracy in meters, or None.
        accuracy: Horizontal accuracy in meters, or None.
        timestamp: Seconds.
    """

    latitude: Optional[float] = None
    longitude: Optional[float] = None
    altitude: Optional[float] = None
    altitude_accuracy: Optional[float] = None
    accuracy: Optional[float] = None
    timestamp: float = 0.0

    @property
    def has_position(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass(frozen=True)
class PressureReading:
    """Barometer sample in hPa."""

    pressure_hpa: float
    timestamp: float = 0.0

    def __post_init__(self) -> None:
        if self.pressure_hpa <= 0:
            raise ValueError(
                f"pressure_hpa must be positive, got {self.pressure_hpa}"
            )


@dataclass(frozen=True)
class MotionSample:
    """
    Combined motion sample.

    Attributes:
        acceleration: Linear acceleration including gravity, shape (3,), m/s².
        rotation_rate: Rotation rate (alpha, beta, gamma), shape (3,), rad/s.
        timestamp: Seconds.
    """

    acceleration: np.ndarray
    rotation_rate: np.ndarray
    timestamp: float = 0.0

    def __post_init__(self) -> None:
        acc = np.asarray(self.acceleration, dtype=float)
        rot = np.asarray(self.rotation_rate, dtype=float)
        if acc.shape != (3,):
            raise ValueError(f"acceleration must have shape (3,), got {acc.shape}")
        if rot.shape != (3,):
            raise ValueError(f"rotation_rate must have shape (3,), got {rot.shape}")
        object.__setattr__(self, "acceleration", acc)
        object.__setattr__(self, "rotation_rate", rot)

    @property
    def acceleration_magnitude(self) -> float:
        return float(np.linalg.norm(self.acceleration))

    @property
    def rotation_magnitude(self) -> float:
        return float(np.linalg.norm(self.rotation_rate))


@dataclass(frozen=True)
class AccessPoint:
    """One visible access point in a Wi-Fi scan."""

    bssid: str
    level: float
    ssid: str = ""
