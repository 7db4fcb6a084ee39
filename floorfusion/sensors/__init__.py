"""
Sensor sources for floor localization.

Modules:
    types: Immutable reading packets (LocationFix, PressureReading, ...)
    providers: Abstract device boundaries (location, barometer, motion, Wi-Fi,
               key-value storage)
    stream: Latest-value observable streams and cancel handles
    barometer: Barometric altitude relative to a calibrated ground reference
    gps: GPS altitude tracker with retry/backoff and warm-up polling
    motion: Inertial floor-transition detector
"""

from floorfusion.sensors.types import (
    AccessPoint,
    LocationFix,
    MotionSample,
    PressureReading,
)
from floorfusion.sensors.providers import (
    BarometerProvider,
    KeyValueStore,
    LocationProvider,
    MotionProvider,
    WifiScanProvider,
)
from floorfusion.sensors.stream import SignalStream, Subscription
from floorfusion.sensors.barometer import (
    BarometricAltitudeEstimator,
    ground_pressure_for,
    pressure_to_relative_altitude,
)
from floorfusion.sensors.gps import GpsAltitudeTracker
from floorfusion.sensors.motion import (
    FloorTransitionDetector,
    classify_transition,
    window_statistics,
)

__all__ = [
    # Readings
    "AccessPoint",
    "LocationFix",
    "MotionSample",
    "PressureReading",
    # Providers
    "BarometerProvider",
    "KeyValueStore",
    "LocationProvider",
    "MotionProvider",
    "WifiScanProvider",
    # Streams
    "SignalStream",
    "Subscription",
    # Barometer
    "BarometricAltitudeEstimator",
    "ground_pressure_for",
    "pressure_to_relative_altitude",
    # GPS
    "GpsAltitudeTracker",
    # Motion
    "FloorTransitionDetector",
    "classify_transition",
    "window_statistics",
]
