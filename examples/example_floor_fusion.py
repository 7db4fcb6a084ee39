"""
Example: Dynamic Floor Localization (Barometer + GPS + IMU + Wi-Fi)

Replays a synthetic multi-floor walk through ``DynamicFloorSession`` with
simulated providers and compares sensor combinations:
    - Barometer only (midpoint altitude bucketing)
    - Barometer + IMU + Wi-Fi (nearest-altitude matching with fallbacks)

The walk starts outdoors: the geofence keeps the floor frozen until the user
enters the footprint, while the barometer is anchored and kept in check
against GPS.

Usage:
    python examples/example_floor_fusion.py [--config configs/queyk_building.yaml]
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import numpy as np

sys.path.insert(0, str(Path(__file__).parent.parent))

from floorfusion.config import ConfigurationManager, FloorFusionConfig
from floorfusion.eval import (
    count_floor_switches,
    floor_accuracy,
    floor_error_histogram,
    plot_floor_trace,
    save_figure,
)
from floorfusion.fingerprinting import FingerprintStore, MemoryKeyValueStore
from floorfusion.floors import FloorPlan
from floorfusion.fusion import DynamicFloorSession
from floorfusion.sim import (
    BuildingWalk,
    ManualClock,
    SimulatedBarometerProvider,
    SimulatedLocationProvider,
    SimulatedMotionProvider,
    SimulatedWifiScanProvider,
    generate_building_walk,
    replay_walk,
)
from floorfusion.utils.geometry import BuildingFootprint


async def run_session(
    walk: BuildingWalk,
    plan: FloorPlan,
    footprint: BuildingFootprint,
    config: FloorFusionConfig,
    use_imu: bool,
    use_wifi: bool,
) -> np.ndarray:
    """Enable dynamic mode on fresh simulated providers and replay ``walk``."""
    clock = ManualClock()
    location = SimulatedLocationProvider(fix=walk.location_fix(0))
    barometer = SimulatedBarometerProvider()
    motion = SimulatedMotionProvider() if use_imu else None
    wifi = SimulatedWifiScanProvider() if use_wifi else None

    kv = MemoryKeyValueStore()
    if use_wifi:
        FingerprintStore(kv).save_floors(walk.surveyed_plan(plan).floors)

    session = DynamicFloorSession(
        plan,
        location,
        barometer=barometer,
        motion=motion,
        wifi=wifi,
        store=kv,
        footprint=footprint,
        config=config,
        clock=clock,
    )
    result = await session.enable()
    if not result.success:
        raise RuntimeError(f"Dynamic mode failed: {result.reason}")

    estimated = await replay_walk(
        walk, session, location, barometer=barometer, motion=motion, wifi=wifi, clock=clock
    )
    await session.disable()
    return estimated


def main(config_file: Optional[str] = None):
    print("\n" + "=" * 70)
    print("Dynamic Floor Localization (Barometer + GPS + IMU + Wi-Fi)")
    print("=" * 70)

    manager = ConfigurationManager(config_file)
    config = manager.get_config()
    plan = manager.get_floor_plan()
    footprint = manager.get_footprint()

    print("\nGenerating building walk...")
    walk = generate_building_walk(
        plan=plan,
        footprint=footprint,
        ground_altitude=config.building.ground_altitude,
        seed=7,
    )
    print(f"  Duration:        {walk.t[-1]:.0f} s")
    print(f"  Floors:          {[f.value for f in plan]}")
    print(f"  Samples:         {len(walk)}")

    runs = {}
    for name, use_imu, use_wifi in [
        ("Barometer", False, False),
        ("Barometer + IMU + Wi-Fi", True, True),
    ]:
        print(f"\nReplaying: {name}...")
        runs[name] = asyncio.run(run_session(walk, plan, footprint, config, use_imu, use_wifi))

    print("\n" + "=" * 70)
    print("RESULTS (inside the building)")
    print("=" * 70)
    for name, estimated in runs.items():
        accuracy = floor_accuracy(walk.floor_index, estimated, mask=walk.inside)
        print(f"{name}:")
        print(f"  Floor accuracy:   {accuracy * 100:.1f}%")
        print(f"  Floor switches:   {count_floor_switches(estimated)} "
              f"(true: {count_floor_switches(walk.floor_index)})")
        print(f"  Error histogram:  {floor_error_histogram(walk.floor_index, estimated)}")

    figs_dir = Path(__file__).parent / "figs"
    fig = plot_floor_trace(
        walk.t,
        walk.floor_index,
        runs,
        floor_labels=[f.label for f in plan],
        altitude=walk.altitude,
        title="Dynamic Floor Estimate",
    )
    paths = save_figure(fig, figs_dir, "floor_fusion_trace")
    print(f"\nFigures saved to: {paths[0].parent}/")
    print()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Dynamic floor localization example")
    parser.add_argument("--config", type=str, default=None, help="Building configuration file")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    main(args.config)
