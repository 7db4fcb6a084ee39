"""
Altitude-to-floor estimators.

Two strategies map one altitude to a floor index of a ``FloorPlan``:

    NearestAltitudeEstimator
        floor* = argmin_i |h - h_i|, accepted only if |h - h_i*| < bound.
        Used when other signals (Wi-Fi, IMU) share the decision, so the
        altitude only overrides them when it agrees closely with a floor.

    MidpointFloorEstimator
        Buckets h against midpoints between consecutive floors, with snap
        bands at both ends and a margin below each floor. Always returns a
        floor when any floor has an altitude; used for altitude-only flows.

Both are pure with respect to their inputs and only consider floors that
define an altitude; the returned index refers to the full plan.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

import numpy as np

from floorfusion.floors import FloorPlan


def _altitude_table(plan: FloorPlan) -> Tuple[List[int], np.ndarray]:
    indices = [i for i, f in enumerate(plan.floors) if f.altitude is not None]
    altitudes = np.array([plan.floors[i].altitude for i in indices], dtype=float)
    return indices, altitudes


class FloorEstimator(ABC):
    """Abstract altitude-to-floor strategy."""

    name = "base"

    @abstractmethod
    def estimate(self, altitude: float, plan: FloorPlan) -> Optional[int]:
        """
        Floor index for ``altitude``.

        Args:
            altitude: Meters, in the plan's altitude convention.
            plan: Floor plan with ascending floor altitudes.

        Returns:
            Index into ``plan.floors``, or None when no decision can be made.
        """


class NearestAltitudeEstimator(FloorEstimator):
    """Closest-altitude floor within ``max_difference`` meters.

    Example:
        >>> est = NearestAltitudeEstimator(max_difference=5.0)
        >>> est.estimate(3.9, plan)   # floors at 0 m and 4 m
        1
    """

    name = "nearest"

    def __init__(self, max_difference: float = 5.0):
        if max_difference <= 0:
            raise ValueError(f"max_difference must be positive, got {max_difference}")
        self.max_difference = max_difference

    def estimate(self, altitude: float, plan: FloorPlan) -> Optional[int]:
        indices, altitudes = _altitude_table(plan)
        if not indices:
            return None

        diffs = np.abs(altitudes - altitude)
        best = int(np.argmin(diffs))  # first minimum: ties go to the lower floor
        if diffs[best] < self.max_difference:
            return indices[best]
        return None


class MidpointFloorEstimator(FloorEstimator):
    """
    Midpoint bucketing with asymmetric edge bands.

    Rules, with floors sorted by altitude h_0 < h_1 < ... < h_n:
        - h <= h_0 + lower_snap                  -> lowest floor
        - h >= h_n - upper_snap                  -> highest floor
        - for each pair (i, i+1), m = (h_i + h_{i+1}) / 2:
              h <= m                             -> floor i
              h <  h_{i+1} - hysteresis_margin   -> floor i+1
          otherwise continue with the next pair; a value exactly at
          h_{i+1} - margin is resolved by the next pair (floor i+1).

    Args:
        lower_snap: Band above the lowest floor that snaps to it. Default 1.5 m.
        upper_snap: Band below the highest floor that snaps to it. Default 1.0 m.
        hysteresis_margin: Margin below a floor's altitude where the next
                           pair takes over. Default 1.0 m.

    Example:
        >>> est = MidpointFloorEstimator()
        >>> [est.estimate(h, plan) for h in (2.0, 6.0, 20.0)]  # 0,4,8,12,16 m
        [0, 1, 4]
    """

    name = "midpoint"

    def __init__(
        self,
        lower_snap: float = 1.5,
        upper_snap: float = 1.0,
        hysteresis_margin: float = 1.0,
    ):
        for label, value in (
            ("lower_snap", lower_snap),
            ("upper_snap", upper_snap),
            ("hysteresis_margin", hysteresis_margin),
        ):
            if value < 0:
                raise ValueError(f"{label} must be non-negative, got {value}")
        self.lower_snap = lower_snap
        self.upper_snap = upper_snap
        self.hysteresis_margin = hysteresis_margin

    def estimate(self, altitude: float, plan: FloorPlan) -> Optional[int]:
        indices, altitudes = _altitude_table(plan)
        if not indices:
            return None

        if altitude <= altitudes[0] + self.lower_snap:
            return indices[0]
        if altitude >= altitudes[-1] - self.upper_snap:
            return indices[-1]

        for k in range(len(altitudes) - 1):
            midpoint = 0.5 * (altitudes[k] + altitudes[k + 1])
            if altitude <= midpoint:
                return indices[k]
            if altitude < altitudes[k + 1] - self.hysteresis_margin:
                return indices[k + 1]

        return indices[-1]


def select_estimator(
    strategy: str = "auto",
    multi_signal: bool = False,
    gps_agreement_bound: float = 5.0,
    lower_snap: float = 1.5,
    upper_snap: float = 1.0,
    hysteresis_margin: float = 1.0,
) -> FloorEstimator:
    """
    Pick the altitude estimator for the signals available at runtime.

    Args:
        strategy: 'nearest', 'midpoint', or 'auto'.
        multi_signal: True when Wi-Fi fingerprints or the IMU also feed the
                      fusion. 'auto' then selects nearest-altitude matching;
                      otherwise midpoint bucketing.

    Returns:
        A configured ``FloorEstimator``.
    """
    if strategy == "auto":
        strategy = "nearest" if multi_signal else "midpoint"
    if strategy == "nearest":
        return NearestAltitudeEstimator(gps_agreement_bound)
    if strategy == "midpoint":
        return MidpointFloorEstimator(lower_snap, upper_snap, hysteresis_margin)
    raise ValueError(f"Unknown altitude strategy: '{strategy}'")
