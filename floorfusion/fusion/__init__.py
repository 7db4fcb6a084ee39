"""
Floor fusion.

Modules:
    types: Signal snapshot, fusion state and floor estimate
    estimators: Altitude-to-floor strategies (nearest, midpoint)
    engine: Priority-cascade fusion engine
    session: Dynamic-mode lifecycle around the engine
"""

from floorfusion.fusion.types import FloorEstimate, FloorSource, FusionState, SignalSnapshot
from floorfusion.fusion.estimators import (
    FloorEstimator,
    MidpointFloorEstimator,
    NearestAltitudeEstimator,
    select_estimator,
)
from floorfusion.fusion.engine import FloorFusionEngine
from floorfusion.fusion.session import DynamicFloorSession

__all__ = [
    # Types
    "FloorEstimate",
    "FloorSource",
    "FusionState",
    "SignalSnapshot",
    # Estimators
    "FloorEstimator",
    "MidpointFloorEstimator",
    "NearestAltitudeEstimator",
    "select_estimator",
    # Engine
    "FloorFusionEngine",
    "DynamicFloorSession",
]
