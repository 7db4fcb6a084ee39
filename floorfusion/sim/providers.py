"""
In-process provider implementations for tests and offline replay.

Each simulated provider is driven explicitly: tests set its state
(permission, availability, failure injection) and push readings with
``emit``; listeners are called synchronously, like device callbacks on the
event loop thread.
"""

from typing import Callable, List, Optional, Sequence

from floorfusion.errors import PermissionStatus, ProviderError, ScanFailure
from floorfusion.sensors.providers import (
    BarometerProvider,
    LocationProvider,
    MotionProvider,
    WifiScanProvider,
)
from floorfusion.sensors.stream import Subscription
from floorfusion.sensors.types import AccessPoint, LocationFix, MotionSample, PressureReading


class ManualClock:
    """Settable monotonic clock, usable wherever a ``clock`` callable is accepted."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now

    def set(self, now: float) -> None:
        self.now = now


class _ListenerSet:
    def __init__(self):
        self.callbacks: List[Callable] = []

    def add(self, callback: Callable) -> Subscription:
        self.callbacks.append(callback)

        def _remove() -> None:
            if callback in self.callbacks:
                self.callbacks.remove(callback)

        return Subscription(_remove)

    def emit(self, value) -> None:
        for callback in list(self.callbacks):
            callback(value)

    def __len__(self) -> int:
        return len(self.callbacks)


class SimulatedLocationProvider(LocationProvider):
    """
    Location services with controllable permission and fixes.

    Args:
        services_enabled: Device-level location switch.
        permission: Current permission status.
        grant_on_request: Status returned (and stored) by ``request_permission``.
        fix: Result of ``get_current_position``; None raises ``ProviderError``.
        failure: Exception raised by every call when set.
    """

    def __init__(
        self,
        services_enabled: bool = True,
        permission: PermissionStatus = PermissionStatus.GRANTED,
        grant_on_request: PermissionStatus = PermissionStatus.GRANTED,
        fix: Optional[LocationFix] = None,
        failure: Optional[Exception] = None,
    ):
        self.services_enabled = services_enabled
        self.permission = permission
        self.grant_on_request = grant_on_request
        self.fix = fix
        self.failure = failure
        self.request_count = 0
        self.watch_count = 0
        self.position_requests = 0
        self.watch_intervals: List[float] = []
        self._watchers = _ListenerSet()

    @property
    def active_watchers(self) -> int:
        return len(self._watchers)

    def _check(self) -> None:
        if self.failure is not None:
            raise self.failure

    async def has_services_enabled(self) -> bool:
        self._check()
        return self.services_enabled

    async def get_permission(self) -> PermissionStatus:
        self._check()
        return self.permission

    async def request_permission(self) -> PermissionStatus:
        self._check()
        self.request_count += 1
        self.permission = self.grant_on_request
        return self.permission

    async def get_current_position(self) -> LocationFix:
        self._check()
        self.position_requests += 1
        if self.fix is None:
            raise ProviderError("No location fix available")
        return self.fix

    async def watch_position(
        self,
        callback: Callable[[LocationFix], None],
        time_interval: float,
        distance_interval: float = 0.0,
    ) -> Subscription:
        self._check()
        self.watch_count += 1
        self.watch_intervals.append(time_interval)
        return self._watchers.add(callback)

    def emit(self, fix: LocationFix) -> None:
        """Deliver ``fix`` to every active watcher and make it the current position."""
        self.fix = fix
        self._watchers.emit(fix)


class SimulatedBarometerProvider(BarometerProvider):
    def __init__(self, available: bool = True, failure: Optional[Exception] = None):
        self.available = available
        self.failure = failure
        self.update_interval: Optional[float] = None
        self._listeners = _ListenerSet()

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def is_available(self) -> bool:
        if self.failure is not None:
            raise self.failure
        return self.available

    def add_listener(self, callback: Callable[[PressureReading], None]) -> Subscription:
        return self._listeners.add(callback)

    def set_update_interval(self, interval: float) -> None:
        self.update_interval = interval

    def emit(self, pressure_hpa: float, timestamp: float = 0.0) -> None:
        self._listeners.emit(PressureReading(pressure_hpa, timestamp))


class SimulatedMotionProvider(MotionProvider):
    def __init__(self):
        self.update_interval: Optional[float] = None
        self._listeners = _ListenerSet()

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def add_listener(self, callback: Callable[[MotionSample], None]) -> Subscription:
        return self._listeners.add(callback)

    def set_update_interval(self, interval: float) -> None:
        self.update_interval = interval

    def emit(self, sample: MotionSample) -> None:
        self._listeners.emit(sample)


class SimulatedWifiScanProvider(WifiScanProvider):
    """
    Wi-Fi scanner returning ``access_points`` on every scan.

    Args:
        access_points: Current visible access points.
        fail: Raise ``ScanFailure`` on scan when True.
    """

    def __init__(self, access_points: Optional[Sequence[AccessPoint]] = None, fail: bool = False):
        self.access_points: List[AccessPoint] = list(access_points or [])
        self.fail = fail
        self.scan_count = 0

    async def scan(self) -> List[AccessPoint]:
        self.scan_count += 1
        if self.fail:
            raise ScanFailure("Wi-Fi scan throttled")
        return list(self.access_points)
