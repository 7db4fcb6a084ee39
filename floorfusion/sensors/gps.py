"""GPS altitude tracking with permission handling, retry and warm-up polling.

The push-based watcher is supplemented by a bounded warm-up poll of one-shot
fixes, because some devices register a watcher but deliver no callback for a
long time. ``ensure_watcher_started`` composes bounded attempts sequentially,
each with its own timeout, and reports why it failed instead of raising.
"""

import asyncio
import logging
import time
from typing import Callable, Optional

from floorfusion.config import GpsConfig
from floorfusion.errors import FailureReason, FloorFusionError, PermissionStatus, WatcherResult
from floorfusion.sensors.providers import LocationProvider
from floorfusion.sensors.stream import SignalStream, Subscription
from floorfusion.sensors.types import LocationFix

logger = logging.getLogger(__name__)


class GpsAltitudeTracker:
    """
    Continuous location watcher exposing the latest altitude snapshot.

    Attributes:
        latitude, longitude, altitude, altitude_accuracy: Latest observed
            values (None until a fix carrying them arrives).
        permission: Last permission status seen, None before the first check.
        last_callback_time: Clock time of the last watcher callback.
        stream: Publishes every applied ``LocationFix``.

    Args:
        provider: Location provider.
        config: Tracker parameters (intervals, warm-up, retry defaults).
        clock: Monotonic time source in seconds.
    """

    def __init__(
        self,
        provider: LocationProvider,
        config: Optional[GpsConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.provider = provider
        self.config = config or GpsConfig()
        self.clock = clock

        self.latitude: Optional[float] = None
        self.longitude: Optional[float] = None
        self.altitude: Optional[float] = None
        self.altitude_accuracy: Optional[float] = None
        self.permission: Optional[PermissionStatus] = None
        self.last_callback_time: Optional[float] = None
        self.stream: SignalStream[LocationFix] = SignalStream("gps")

        self._subscription: Optional[Subscription] = None
        self._warmup_task: Optional[asyncio.Task] = None

    @property
    def is_watching(self) -> bool:
        return self._subscription is not None

    @property
    def is_warming_up(self) -> bool:
        return self._warmup_task is not None and not self._warmup_task.done()

    def _apply_fix(self, fix: LocationFix) -> None:
        self.altitude = fix.altitude
        self.altitude_accuracy = fix.altitude_accuracy
        self.latitude = fix.latitude
        self.longitude = fix.longitude
        self.stream.publish(fix)

    def _on_watch(self, fix: LocationFix) -> None:
        self.last_callback_time = self.clock()
        self._apply_fix(fix)

    async def _resolve_permission(self, force_request: bool) -> PermissionStatus:
        status = await self.provider.get_permission()
        if status != PermissionStatus.GRANTED and force_request:
            status = await self.provider.request_permission()
        self.permission = status
        return status

    async def start_watching(self, force_request: bool = True) -> Optional[PermissionStatus]:
        """
        Resolve permission, take a quick fix and start the watcher.

        Args:
            force_request: Prompt for permission if it is not yet granted.
                           When False, only the current status is read.

        Returns:
            The permission status, or None if the provider failed.
        """
        try:
            status = await self._resolve_permission(force_request)
            if status != PermissionStatus.GRANTED:
                logger.warning("Location permission not granted (%s)", status.value)
                return status

            try:
                self._apply_fix(await self.provider.get_current_position())
            except FloorFusionError as exc:
                logger.debug("Quick position fix failed: %s", exc)

            if self._subscription is not None:
                return status

            self._subscription = await self.provider.watch_position(
                self._on_watch,
                time_interval=self.config.time_interval,
                distance_interval=self.config.distance_interval,
            )
            logger.info("Location watcher started")

            if self._warmup_task is None or self._warmup_task.done():
                self._warmup_task = asyncio.ensure_future(self._warm_up())
            return status
        except FloorFusionError as exc:
            logger.warning("Failed to start location watcher: %s", exc)
            return None

    async def _warm_up(self) -> None:
        """Poll one-shot fixes until one lands or the attempts run out."""
        for attempt in range(1, self.config.warmup_attempts + 1):
            await asyncio.sleep(self.config.warmup_interval)
            try:
                fix = await self.provider.get_current_position()
            except FloorFusionError as exc:
                logger.debug("Warm-up attempt %d failed: %s", attempt, exc)
                continue
            self._apply_fix(fix)
            logger.debug("Warm-up fix landed on attempt %d", attempt)
            return
        logger.debug("Warm-up gave up after %d attempts", self.config.warmup_attempts)

    def stop_watching(self) -> None:
        """Remove the watcher and cancel any pending warm-up poll."""
        if self._subscription is not None:
            self._subscription.remove()
            self._subscription = None
            logger.info("Location watcher stopped")
        if self._warmup_task is not None:
            if not self._warmup_task.done():
                self._warmup_task.cancel()
            self._warmup_task = None

    def reset(self) -> None:
        self.stop_watching()
        self.latitude = None
        self.longitude = None
        self.altitude = None
        self.altitude_accuracy = None
        self.last_callback_time = None
        self.stream.clear()

    async def wait_for_altitude(self, timeout: float, poll_interval: Optional[float] = None) -> bool:
        """Poll until an altitude is known or ``timeout`` seconds elapse."""
        poll = poll_interval if poll_interval is not None else self.config.poll_interval
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            if self.altitude is not None:
                return True
            if loop.time() > deadline:
                return False
            await asyncio.sleep(poll)

    async def ensure_watcher_started(
        self,
        attempts: Optional[int] = None,
        wait_for_altitude: Optional[float] = None,
        delay_between_attempts: Optional[float] = None,
        prompt_if_needed: bool = False,
    ) -> WatcherResult:
        """
        Make sure a watcher is live and has produced an altitude.

        Attempts are composed sequentially; between attempts the watcher is
        stopped and restarted so that duplicate watchers never stack.

        Args:
            attempts: Number of start attempts. Larger when offline, since
                      GPS-only fixes take longer.
            wait_for_altitude: Seconds to wait for an altitude per attempt.
            delay_between_attempts: Pause after a failed attempt, seconds.
            prompt_if_needed: Allow the permission prompt. When False, a
                              missing permission fails immediately.

        Returns:
            ``WatcherResult``: success, or a reason of ``SERVICES_DISABLED``,
            ``PERMISSION_DENIED``, ``UNAVAILABLE`` (all attempts timed out)
            or ``ERROR`` (provider failure).
        """
        cfg = self.config
        attempts = cfg.default_attempts if attempts is None else attempts
        wait = cfg.default_wait_for_altitude if wait_for_altitude is None else wait_for_altitude
        delay = cfg.delay_between_attempts if delay_between_attempts is None else delay_between_attempts

        try:
            if not await self.provider.has_services_enabled():
                logger.warning("Location services disabled")
                return WatcherResult(False, FailureReason.SERVICES_DISABLED)

            for attempt in range(1, attempts + 1):
                if not prompt_if_needed:
                    current = await self.provider.get_permission()
                    self.permission = current
                    if current != PermissionStatus.GRANTED:
                        return WatcherResult(False, FailureReason.PERMISSION_DENIED, current)

                if self._subscription is not None and self.altitude is not None:
                    return WatcherResult(True, permission=self.permission)

                self.stop_watching()
                await asyncio.sleep(cfg.restart_delay)

                permission = await self.start_watching(prompt_if_needed)
                if permission is not None and permission != PermissionStatus.GRANTED:
                    return WatcherResult(False, FailureReason.PERMISSION_DENIED, permission)

                if await self.wait_for_altitude(wait):
                    logger.info("Altitude acquired on attempt %d/%d", attempt, attempts)
                    return WatcherResult(True, permission=permission)

                logger.debug("No altitude after %.1fs (attempt %d/%d)", wait, attempt, attempts)
                self.stop_watching()
                await asyncio.sleep(delay)

            logger.warning("Altitude unavailable after %d attempt(s)", attempts)
            return WatcherResult(False, FailureReason.UNAVAILABLE, self.permission)
        except FloorFusionError as exc:
            logger.warning("Location provider error while starting watcher: %s", exc)
            return WatcherResult(False, FailureReason.ERROR, self.permission)
