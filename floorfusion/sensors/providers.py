"""
Provider interfaces: the boundary to device sensor SDKs.

The floor localization core never talks to hardware directly. It consumes
these abstract providers, which a platform layer implements (and which
``floorfusion.sim.providers`` implements in-process for tests and replay).

Failure contract:
    Providers raise the exceptions in ``floorfusion.errors``
    (``PermissionDenied``, ``ServiceDisabled``, ``SensorUnavailable``,
    ``ScanFailure``, ``ProviderError``). The sensor components catch them and
    turn them into status values.

Listener callbacks are invoked on the event loop thread.
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from floorfusion.errors import PermissionStatus
from floorfusion.sensors.stream import Subscription
from floorfusion.sensors.types import AccessPoint, LocationFix, MotionSample, PressureReading


class LocationProvider(ABC):
    """Location services: permission, one-shot fixes and continuous watch."""

    @abstractmethod
    async def has_services_enabled(self) -> bool:
        """Return True if device-level location services are on."""

    @abstractmethod
    async def get_permission(self) -> PermissionStatus:
        """Return the current foreground permission without prompting."""

    @abstractmethod
    async def request_permission(self) -> PermissionStatus:
        """Prompt for foreground permission and return the result."""

    @abstractmethod
    async def get_current_position(self) -> LocationFix:
        """One-shot fix. Raises ``ProviderError`` if no fix can be produced."""

    @abstractmethod
    async def watch_position(
        self,
        callback: Callable[[LocationFix], None],
        time_interval: float,
        distance_interval: float = 0.0,
    ) -> Subscription:
        """Start continuous updates at least ``time_interval`` seconds apart."""


class BarometerProvider(ABC):
    """Atmospheric pressure source."""

    @abstractmethod
    async def is_available(self) -> bool:
        """Return True if the device has a barometer."""

    @abstractmethod
    def add_listener(self, callback: Callable[[PressureReading], None]) -> Subscription:
        """Deliver readings to ``callback`` until the subscription is removed."""

    @abstractmethod
    def set_update_interval(self, interval: float) -> None:
        """Set the reading interval in seconds."""


class MotionProvider(ABC):
    """Combined accelerometer (including gravity) and gyroscope source."""

    @abstractmethod
    def add_listener(self, callback: Callable[[MotionSample], None]) -> Subscription:
        """Deliver samples to ``callback`` until the subscription is removed."""

    @abstractmethod
    def set_update_interval(self, interval: float) -> None:
        """Set the sampling interval in seconds."""


class WifiScanProvider(ABC):
    """Wi-Fi access point scanner (radio on, no connection required)."""

    @abstractmethod
    async def scan(self) -> List[AccessPoint]:
        """Return visible access points. Raises ``ScanFailure`` on API errors."""


class KeyValueStore(ABC):
    """Persistent string key-value store (secure storage on device)."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value or None."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""
