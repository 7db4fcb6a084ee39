"""
Dynamic floor session: lifecycle around the fusion engine.

``DynamicFloorSession`` owns every sensor component, the engine, the building
footprint, the fingerprint store and the background tasks of "dynamic mode",
where the displayed floor follows the user automatically.

Lifecycle:

    enable()  --success--> dynamic (flag persisted "true")
       |  \\--failure--> static, altitude_error set, everything torn down
       |
    resume()  re-enters dynamic mode at startup when the persisted flag is set;
              acquisition failures are reported but the mode is kept
    retry()   re-runs watcher acquisition while in dynamic mode
    cancel_awaiting()  user aborts while waiting for the first altitude
    disable() tears down, forgets GPS, barometer and IMU readings and the
              fusion state, persists "false"

Every location, barometer, motion or Wi-Fi event triggers one fusion tick.
Location events first refresh the geofence flag and give the barometer a
chance to recalibrate against GPS.
"""

import asyncio
import logging
import time
from typing import Callable, List, Optional

from floorfusion.config import FloorFusionConfig
from floorfusion.errors import FailureReason, FloorFusionError, PermissionStatus, WatcherResult
from floorfusion.fingerprinting.matcher import FingerprintMatch, match_fingerprint
from floorfusion.fingerprinting.scanner import WifiFingerprintScanner
from floorfusion.fingerprinting.storage import FingerprintStore, open_store
from floorfusion.floors import AltitudeReference, Floor, FloorPlan, WifiFingerprint
from floorfusion.fusion.engine import FloorFusionEngine
from floorfusion.fusion.types import FloorEstimate, SignalSnapshot
from floorfusion.sensors.barometer import BarometricAltitudeEstimator
from floorfusion.sensors.gps import GpsAltitudeTracker
from floorfusion.sensors.motion import FloorTransitionDetector
from floorfusion.sensors.providers import (
    BarometerProvider,
    KeyValueStore,
    LocationProvider,
    MotionProvider,
    WifiScanProvider,
)
from floorfusion.sensors.stream import SignalStream, Subscription
from floorfusion.sensors.types import LocationFix
from floorfusion.utils.geometry import BuildingFootprint, Coordinate

logger = logging.getLogger(__name__)


def _failure_reason(result: WatcherResult) -> FailureReason:
    if result.permission_denied:
        return FailureReason.PERMISSION_DENIED
    return result.reason or FailureReason.UNAVAILABLE


class DynamicFloorSession:
    """
    Owns sensors, fusion engine and timers for dynamic floor tracking.

    Args:
        plan: Static floor plan. Stored fingerprints are merged into it.
        location: Location provider (required).
        barometer: Barometer provider, or None to run without pressure.
        motion: Motion provider, or None to run without the IMU.
        wifi: Wi-Fi scan provider, or None to run without fingerprints.
        store: Key-value store for fingerprints and the dynamic-mode flag.
               Default: JSON file at ``config.storage_path``, in memory if unset.
        footprint: Building outline. Default: from ``config.building``.
        config: Full configuration.
        clock: Monotonic time source shared by the sensor components.

    Attributes:
        is_dynamic: True while dynamic mode is on.
        awaiting_altitude: True while waiting for the first altitude.
        altitude_error: Why altitude acquisition last failed, or None.
        inside_building: Latest geofence result (None when unknown).
        last_estimate: Result of the latest fusion tick.
        floor_stream: Publishes every ``FloorEstimate``.
    """

    def __init__(
        self,
        plan: FloorPlan,
        location: LocationProvider,
        barometer: Optional[BarometerProvider] = None,
        motion: Optional[MotionProvider] = None,
        wifi: Optional[WifiScanProvider] = None,
        store: Optional[KeyValueStore] = None,
        footprint: Optional[BuildingFootprint] = None,
        config: Optional[FloorFusionConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or FloorFusionConfig()
        building = self.config.building
        self.footprint = footprint or BuildingFootprint(
            name=building.name,
            corners=[Coordinate(lat, lon) for lat, lon in building.footprint],
        )
        self.location = location
        self.store = FingerprintStore(store if store is not None else open_store(self.config.storage_path))

        stored = self.store.load_floors()
        if stored:
            plan = plan.with_fingerprints(stored)
            logger.info("Loaded stored fingerprints for %d floor(s)", len(stored))

        self.tracker = GpsAltitudeTracker(location, self.config.gps, clock)
        self.barometer = (
            BarometricAltitudeEstimator(barometer, self.config.barometer, clock)
            if barometer is not None else None
        )
        self.detector = (
            FloorTransitionDetector(motion, self.config.motion, clock)
            if motion is not None else None
        )
        self.scanner = (
            WifiFingerprintScanner(wifi, self.config.wifi)
            if wifi is not None else None
        )

        self.engine = FloorFusionEngine(
            plan,
            self.config.fusion,
            multi_signal=self._multi_signal(plan),
            ground_altitude=building.ground_altitude,
        )

        self.is_dynamic = False
        self.awaiting_altitude = False
        self.altitude_error: Optional[FailureReason] = None
        self.inside_building: Optional[bool] = None
        self.last_estimate: Optional[FloorEstimate] = None
        self.floor_stream: SignalStream[FloorEstimate] = SignalStream("floor")

        self._subscriptions: List[Subscription] = []
        self._scan_task: Optional[asyncio.Task] = None
        self._awaiting_task: Optional[asyncio.Task] = None
        self._generation = 0

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def plan(self) -> FloorPlan:
        return self.engine.plan

    @property
    def current_floor(self) -> Floor:
        return self.engine.current_floor

    @property
    def wifi_match(self) -> Optional[FingerprintMatch]:
        """Match of the latest scanned fingerprint against the surveyed floors."""
        if self.scanner is None:
            return None
        cfg = self.config.wifi
        return match_fingerprint(
            self.scanner.fingerprint,
            self.plan.floors,
            threshold=cfg.match_threshold,
            missing_rssi=cfg.missing_rssi,
        )

    def _multi_signal(self, plan: FloorPlan) -> bool:
        return self.detector is not None or (
            self.scanner is not None and any(f.has_fingerprint for f in plan.floors)
        )

    @property
    def ground_altitude(self) -> float:
        """GPS altitude of the ground floor, used for barometer recalibration."""
        ground = self.plan.ground_floor
        if self.plan.altitude_reference == AltitudeReference.ABSOLUTE and ground.altitude is not None:
            return ground.altitude
        return self.config.building.ground_altitude

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def enable(self, offline: bool = False, prompt_if_needed: bool = True) -> WatcherResult:
        """
        Enter dynamic mode.

        Args:
            offline: No network; GPS-only fixes get more attempts and time.
            prompt_if_needed: Allow the location permission prompt.

        Returns:
            The watcher result. On failure ``altitude_error`` holds the reason
            and the session is back in static mode. ``reason`` is None when
            the attempt was cancelled while in progress.
        """
        if self.is_dynamic:
            return WatcherResult(True, permission=self.tracker.permission)

        try:
            services = await self.location.has_services_enabled()
        except FloorFusionError as exc:
            logger.warning("Could not query location services: %s", exc)
            self.altitude_error = FailureReason.ERROR
            return WatcherResult(False, FailureReason.ERROR)
        if not services:
            logger.warning("Location services disabled; dynamic mode not enabled")
            self.altitude_error = FailureReason.SERVICES_DISABLED
            return WatcherResult(False, FailureReason.SERVICES_DISABLED)

        self._generation += 1
        generation = self._generation
        self.altitude_error = None
        self.is_dynamic = True
        self._start_awaiting(self.config.gps.awaiting_timeout)
        await self._start_sensors()

        attempts, wait = self.config.gps.attempt_policy(offline)
        result = await self.tracker.ensure_watcher_started(
            attempts=attempts,
            wait_for_altitude=wait,
            prompt_if_needed=prompt_if_needed,
        )

        if generation != self._generation:
            logger.info("Enable superseded while acquiring altitude")
            return WatcherResult(False, permission=result.permission)

        self._clear_awaiting()
        if result.success:
            self.altitude_error = None
            self.store.set_dynamic_enabled(True)
            logger.info("Dynamic floor mode enabled")
            self.tick()
            return result

        self.altitude_error = _failure_reason(result)
        logger.warning("Dynamic floor mode not enabled: %s", self.altitude_error.value)
        self._teardown()
        return result

    async def disable(self) -> None:
        """Leave dynamic mode and forget the fused state and every sensor reading."""
        self._generation += 1
        self._teardown()
        self.altitude_error = None
        self.tracker.reset()
        if self.barometer is not None:
            self.barometer.reset()
        if self.detector is not None:
            self.detector.reset()
        self.engine.reset()
        self.last_estimate = None
        self.store.set_dynamic_enabled(False)
        logger.info("Dynamic floor mode disabled")

    async def resume(self, offline: bool = False) -> Optional[WatcherResult]:
        """
        Restore dynamic mode at startup if it was left on.

        Unlike ``enable``, a failed acquisition keeps dynamic mode on with
        ``altitude_error`` set, so the user can retry.

        Returns:
            None if the persisted flag is off, else the watcher result.
        """
        if not self.store.is_dynamic_enabled():
            return None

        self._generation += 1
        generation = self._generation
        self.is_dynamic = True
        await self._start_sensors()

        try:
            permission = await self.location.get_permission()
        except FloorFusionError as exc:
            logger.warning("Could not read location permission on resume: %s", exc)
            self.altitude_error = FailureReason.ERROR
            return WatcherResult(False, FailureReason.ERROR)
        if permission != PermissionStatus.GRANTED:
            self.altitude_error = FailureReason.PERMISSION_DENIED
            return WatcherResult(False, FailureReason.PERMISSION_DENIED, permission)

        self.altitude_error = None
        self._start_awaiting(self.config.gps.resume_awaiting_timeout)
        attempts, wait = self.config.gps.attempt_policy(offline, resuming=True)
        result = await self.tracker.ensure_watcher_started(
            attempts=attempts, wait_for_altitude=wait, prompt_if_needed=False
        )
        if generation != self._generation:
            return WatcherResult(False, permission=result.permission)

        self._clear_awaiting()
        if result.success:
            self.altitude_error = None
            logger.info("Dynamic floor mode resumed")
            self.tick()
        else:
            self.altitude_error = _failure_reason(result)
            logger.warning("Resumed without altitude: %s", self.altitude_error.value)
        return result

    async def retry(self, offline: bool = False) -> WatcherResult:
        """Re-run watcher acquisition and refresh ``altitude_error``."""
        self._generation += 1
        generation = self._generation
        self.altitude_error = None
        self._start_awaiting(self.config.gps.awaiting_timeout)

        attempts, wait = self.config.gps.attempt_policy(offline)
        result = await self.tracker.ensure_watcher_started(
            attempts=attempts, wait_for_altitude=wait, prompt_if_needed=False
        )
        if generation != self._generation:
            return WatcherResult(False, permission=result.permission)

        self._clear_awaiting()
        if result.success:
            self.altitude_error = None
            self.tick()
        else:
            self.altitude_error = _failure_reason(result)
        return result

    def cancel_awaiting(self) -> None:
        """Abort the wait for altitude and leave dynamic mode."""
        self._generation += 1
        self._teardown()
        self.altitude_error = None
        logger.info("Altitude acquisition cancelled")

    # ------------------------------------------------------------------
    # Static mode and fingerprint collection
    # ------------------------------------------------------------------

    def select_floor(self, value: str) -> FloorEstimate:
        estimate = self.engine.select_floor(value)
        self._publish(estimate)
        return estimate

    def select_floor_by_id(self, floor_id: str) -> Optional[FloorEstimate]:
        estimate = self.engine.select_floor_by_id(floor_id)
        if estimate is not None:
            self._publish(estimate)
        return estimate

    async def record_fingerprint(self, floor_value: str, samples: Optional[int] = None) -> Optional[WifiFingerprint]:
        """
        Survey the current floor: scan, store, and use the fingerprint for matching.

        Returns:
            The recorded fingerprint, or None if the scan failed.

        Raises:
            ValueError: If no Wi-Fi provider is configured or the floor is unknown.
        """
        if self.scanner is None:
            raise ValueError("No Wi-Fi provider configured")
        if self.plan.index_of(floor_value) is None:
            raise ValueError(f"Unknown floor '{floor_value}'")

        fingerprint = await self.scanner.scan(samples=samples)
        if fingerprint is None:
            return None

        if not self.store.update_floor_fingerprint(floor_value, fingerprint):
            floors = self.plan.with_fingerprints([]).floors
            floors[self.plan.index_of(floor_value)].wifi_fingerprint = dict(fingerprint)
            self.store.save_floors(floors)

        plan = self.plan.with_fingerprints(self.store.load_floors())
        self.engine.set_plan(plan, multi_signal=self._multi_signal(plan))
        logger.info("Recorded fingerprint for '%s' (%d BSSIDs)", floor_value, len(fingerprint))
        return fingerprint

    # ------------------------------------------------------------------
    # Fusion
    # ------------------------------------------------------------------

    def snapshot(self) -> SignalSnapshot:
        return SignalSnapshot(
            imu_delta=self.detector.floor_delta if self.detector is not None else 0,
            wifi_match=self.wifi_match,
            gps_altitude=self.tracker.altitude,
            barometric_altitude=(
                self.barometer.relative_altitude if self.barometer is not None else None
            ),
            inside_building=self.inside_building,
        )

    def tick(self) -> Optional[FloorEstimate]:
        """Run one fusion step over the latest signals. No-op outside dynamic mode."""
        if not self.is_dynamic:
            return None

        snapshot = self.snapshot()
        state = self.engine.state
        state.latitude = self.tracker.latitude
        state.longitude = self.tracker.longitude
        if self.detector is not None:
            state.imu_confidence = self.detector.confidence

        estimate = self.engine.tick(snapshot)

        if snapshot.imu_delta != 0 and snapshot.inside_building is not False:
            self.detector.consume_delta()

        self._publish(estimate)
        return estimate

    def _publish(self, estimate: FloorEstimate) -> None:
        self.last_estimate = estimate
        self.floor_stream.publish(estimate)

    def _on_location(self, fix: LocationFix) -> None:
        self.inside_building = self.footprint.contains(fix.latitude, fix.longitude)

        if fix.altitude is not None:
            self.awaiting_altitude = False
            self.altitude_error = None
            self._cancel_awaiting_task()

        if self.barometer is not None:
            self.barometer.maybe_recalibrate(
                fix.altitude,
                self.inside_building,
                self.engine.on_ground_floor,
                self.ground_altitude,
            )
        self.tick()

    def _on_signal(self, _value) -> None:
        self.tick()

    # ------------------------------------------------------------------
    # Background work
    # ------------------------------------------------------------------

    async def _start_sensors(self) -> None:
        if self._subscriptions:
            return

        self._subscriptions.append(self.tracker.stream.subscribe(self._on_location))
        if self.barometer is not None:
            self._subscriptions.append(self.barometer.stream.subscribe(self._on_signal))
            await self.barometer.start()
        if self.detector is not None:
            self._subscriptions.append(self.detector.stream.subscribe(self._on_signal))
            self.detector.start()
        if self.scanner is not None:
            self._subscriptions.append(self.scanner.stream.subscribe(self._on_signal))
            if self._scan_task is None or self._scan_task.done():
                self._scan_task = asyncio.ensure_future(self._periodic_scan())

    async def _periodic_scan(self) -> None:
        cfg = self.config.wifi
        while True:
            await asyncio.sleep(cfg.periodic_interval)
            await self.scanner.scan(samples=cfg.periodic_samples)

    def _start_awaiting(self, timeout: float) -> None:
        self._cancel_awaiting_task()
        self.awaiting_altitude = True
        self._awaiting_task = asyncio.ensure_future(self._awaiting_timeout(timeout))

    async def _awaiting_timeout(self, timeout: float) -> None:
        await asyncio.sleep(timeout)
        self._awaiting_task = None
        if self.tracker.altitude is None:
            self.altitude_error = FailureReason.UNAVAILABLE
            self.awaiting_altitude = False
            logger.debug("No altitude within %.1fs", timeout)

    def _cancel_awaiting_task(self) -> None:
        if self._awaiting_task is not None:
            if not self._awaiting_task.done():
                self._awaiting_task.cancel()
            self._awaiting_task = None

    def _clear_awaiting(self) -> None:
        self._cancel_awaiting_task()
        self.awaiting_altitude = False

    def _teardown(self) -> None:
        self._clear_awaiting()
        if self._scan_task is not None:
            if not self._scan_task.done():
                self._scan_task.cancel()
            self._scan_task = None
        for subscription in self._subscriptions:
            subscription.remove()
        self._subscriptions = []

        self.tracker.stop_watching()
        if self.barometer is not None:
            self.barometer.stop()
        if self.detector is not None:
            self.detector.stop()

        self.is_dynamic = False
        self.inside_building = None
