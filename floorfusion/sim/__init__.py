"""
Simulation utilities for floor localization.

Modules:
    building_walk: Synthetic multi-floor walks with noisy sensor streams
    providers: In-process provider implementations with failure injection
    replay: Drive a session with a synthetic walk
"""

from floorfusion.sim.building_walk import (
    BuildingWalk,
    build_schedule,
    generate_building_walk,
    survey_fingerprints,
)
from floorfusion.sim.providers import (
    ManualClock,
    SimulatedBarometerProvider,
    SimulatedLocationProvider,
    SimulatedMotionProvider,
    SimulatedWifiScanProvider,
)
from floorfusion.sim.replay import replay_walk

__all__ = [
    "BuildingWalk",
    "build_schedule",
    "generate_building_walk",
    "survey_fingerprints",
    "ManualClock",
    "SimulatedBarometerProvider",
    "SimulatedLocationProvider",
    "SimulatedMotionProvider",
    "SimulatedWifiScanProvider",
    "replay_walk",
]
