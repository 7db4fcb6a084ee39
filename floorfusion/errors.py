"""Error taxonomy and status values for floor localization.

Providers (device SDK boundaries) raise the exceptions defined here. Sensor
components catch them locally and convert them into the status values below,
so that nothing is thrown across the fusion boundary. Callers can then tell
apart three situations that call for different fallbacks:

    - "no data yet"          (a reading has simply not arrived)
    - "confirmed unavailable" (hardware missing, services off, timeout)
    - "explicit error"        (permission refused, scan API failure)

Validation errors on data types and configuration are plain ``ValueError`` /
``TypeError`` and are raised immediately.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class FloorFusionError(Exception):
    """Base class for all provider-level failures."""


class PermissionDenied(FloorFusionError):
    """Location, motion or Wi-Fi permission refused by the user."""


class ServiceDisabled(FloorFusionError):
    """Device-level location services are switched off."""


class SensorUnavailable(FloorFusionError):
    """The device lacks the requested sensor (e.g. no barometer)."""


class AcquisitionTimeout(FloorFusionError):
    """No reading arrived within the bounded wait."""


class ScanFailure(FloorFusionError):
    """The underlying Wi-Fi scan API returned an error."""


class ProviderError(FloorFusionError):
    """Any other failure reported by a provider."""


class PermissionStatus(str, Enum):
    """Foreground permission state as reported by the location provider."""

    UNDETERMINED = "undetermined"
    DENIED = "denied"
    GRANTED = "granted"


class FailureReason(str, Enum):
    """Why acquiring a GPS altitude failed."""

    PERMISSION_DENIED = "permissionDenied"
    SERVICES_DISABLED = "servicesDisabled"
    UNAVAILABLE = "unavailable"
    ERROR = "error"


class BarometerStatus(str, Enum):
    """Lifecycle of the barometric altitude estimator."""

    UNINITIALIZED = "uninitialized"
    UNAVAILABLE = "unavailable"
    AWAITING_REFERENCE = "awaiting_reference"
    CALIBRATED = "calibrated"
    ERROR = "error"


class ScanStatus(str, Enum):
    """State of the Wi-Fi fingerprint scanner."""

    IDLE = "idle"
    SCANNING = "scanning"
    OK = "ok"
    ERROR = "error"


@dataclass(frozen=True)
class WatcherResult:
    """Outcome of ``GpsAltitudeTracker.ensure_watcher_started``.

    Attributes:
        success: True once a watcher is live and an altitude has been seen.
        reason: Failure kind when ``success`` is False, else None.
        permission: Permission status observed during the attempt, if any.
    """

    success: bool
    reason: Optional[FailureReason] = None
    permission: Optional[PermissionStatus] = None

    @property
    def permission_denied(self) -> bool:
        if self.reason == FailureReason.PERMISSION_DENIED:
            return True
        return self.permission is not None and self.permission != PermissionStatus.GRANTED
