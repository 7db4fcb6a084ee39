"""Replay a synthetic walk through a ``DynamicFloorSession``."""

import logging
from typing import Optional

import numpy as np

from floorfusion.fusion.session import DynamicFloorSession
from floorfusion.sim.building_walk import BuildingWalk
from floorfusion.sim.providers import (
    ManualClock,
    SimulatedBarometerProvider,
    SimulatedLocationProvider,
    SimulatedMotionProvider,
    SimulatedWifiScanProvider,
)

logger = logging.getLogger(__name__)


async def replay_walk(
    walk: BuildingWalk,
    session: DynamicFloorSession,
    location: SimulatedLocationProvider,
    barometer: Optional[SimulatedBarometerProvider] = None,
    motion: Optional[SimulatedMotionProvider] = None,
    wifi: Optional[SimulatedWifiScanProvider] = None,
    clock: Optional[ManualClock] = None,
    barometer_interval: float = 1.0,
) -> np.ndarray:
    """
    Push every sample of ``walk`` through the providers in time order.

    The session must already be in dynamic mode. Wi-Fi scans are taken
    synchronously at the walk's scan times instead of by the session's
    periodic task, so the replay does not depend on wall-clock time.

    Args:
        walk: Synthetic walk.
        session: Session built on the given providers.
        location, barometer, motion, wifi: Simulated providers to drive.
        clock: Clock shared with the session, set to each sample time.
        barometer_interval: Period of pressure readings, s.

    Returns:
        Estimated floor index after each sample [N].
    """
    N = len(walk)
    estimated = np.zeros(N, dtype=int)
    baro_step = max(1, int(round(barometer_interval / walk.dt)))
    scan_index = np.searchsorted(walk.t, walk.scan_times)
    next_scan = 0

    for i in range(N):
        if clock is not None:
            clock.set(float(walk.t[i]))

        if motion is not None:
            motion.emit(walk.motion_sample(i))
        if barometer is not None and i % baro_step == 0:
            barometer.emit(float(walk.pressure[i]), float(walk.t[i]))

        fix = walk.location_fix(i)
        if fix is not None:
            location.emit(fix)

        while next_scan < len(scan_index) and scan_index[next_scan] <= i:
            if wifi is not None and session.scanner is not None:
                wifi.access_points = walk.scans[next_scan]
                await session.scanner.scan(samples=1, interval=0.0)
            next_scan += 1

        estimated[i] = session.engine.current_index

    logger.info("Replayed %d samples (%.0f s)", N, walk.t[-1] if N else 0.0)
    return estimated
