"""Unit tests for floorfusion/fusion/estimators.py.

Tests cover:
    - Nearest-altitude matching with agreement bound
    - Midpoint bucketing, edge snap bands and the margin below each floor
    - Strategy selection

Run with: pytest tests/floorfusion/fusion/test_altitude_estimators.py -v
"""

import pytest

from floorfusion.floors import AltitudeReference, Floor, FloorPlan
from floorfusion.fusion.estimators import (
    MidpointFloorEstimator,
    NearestAltitudeEstimator,
    select_estimator,
)


def plan_at(*altitudes, reference=AltitudeReference.RELATIVE):
    floors = [
        Floor(f"id{i}", f"f{i}", f"Floor {i}", altitude=a)
        for i, a in enumerate(altitudes)
    ]
    return FloorPlan(floors, reference, ground_value="f0")


class TestNearestAltitudeEstimator:
    est = NearestAltitudeEstimator(max_difference=5.0)

    @pytest.mark.parametrize(
        "altitude,expected",
        [(3.9, 1), (0.2, 0), (8.0, 2), (12.9, 2), (-4.9, 0)],
    )
    def test_nearest_within_bound(self, altitude, expected):
        assert self.est.estimate(altitude, plan_at(0.0, 4.0, 8.0)) == expected

    def test_tie_goes_to_lower_floor(self):
        assert self.est.estimate(2.0, plan_at(0.0, 4.0, 8.0)) == 0

    def test_bound_is_exclusive(self):
        assert self.est.estimate(13.0, plan_at(0.0, 4.0, 8.0)) is None
        assert self.est.estimate(20.0, plan_at(0.0, 4.0, 8.0)) is None

    def test_absolute_altitudes(self):
        plan = plan_at(50.0, 54.0, 58.0, reference=AltitudeReference.ABSOLUTE)
        assert self.est.estimate(53.9, plan) == 1

    def test_skips_floors_without_altitude(self):
        plan = FloorPlan([
            Floor("a", "g", "G", altitude=0.0),
            Floor("b", "m", "Mezzanine"),
            Floor("c", "h", "H", altitude=4.0),
        ])
        assert self.est.estimate(3.9, plan) == 2

    def test_no_altitudes(self):
        plan = FloorPlan([Floor("a", "g", "G"), Floor("b", "h", "H")])
        assert self.est.estimate(1.0, plan) is None

    def test_invalid_bound(self):
        with pytest.raises(ValueError):
            NearestAltitudeEstimator(0.0)


class TestMidpointFloorEstimator:
    est = MidpointFloorEstimator()
    plan = plan_at(0.0, 4.0, 8.0, 12.0, 16.0)

    @pytest.mark.parametrize(
        "altitude,expected",
        [
            (-10.0, 0),   # below the lowest floor
            (1.5, 0),     # lower snap band
            (2.0, 0),     # exactly at the midpoint -> lower floor
            (2.5, 1),     # above midpoint, below 4 - margin
            (3.0, 1),     # exactly at 4 - margin, resolved by next pair
            (3.5, 1),
            (6.0, 1),
            (6.5, 2),
            (10.1, 3),
            (14.9, 4),    # just below the upper snap band, above 12-16 midpoint
            (15.0, 4),    # upper snap band
            (40.0, 4),
        ],
    )
    def test_buckets(self, altitude, expected):
        assert self.est.estimate(altitude, self.plan) == expected

    def test_always_decides_when_altitudes_exist(self):
        for h in range(-20, 40):
            assert self.est.estimate(float(h), self.plan) is not None

    def test_monotonic(self):
        results = [self.est.estimate(h / 10.0, self.plan) for h in range(-50, 200)]
        assert results == sorted(results)

    def test_single_floor(self):
        assert self.est.estimate(30.0, plan_at(0.0)) == 0

    def test_gap_floor_indices_refer_to_full_plan(self):
        plan = FloorPlan([
            Floor("a", "g", "G", altitude=0.0),
            Floor("b", "m", "Mezzanine"),
            Floor("c", "h", "H", altitude=4.0),
        ])
        assert self.est.estimate(3.5, plan) == 2
        assert self.est.estimate(0.5, plan) == 0

    def test_no_altitudes(self):
        plan = FloorPlan([Floor("a", "g", "G")])
        assert self.est.estimate(0.0, plan) is None

    def test_negative_parameters_rejected(self):
        with pytest.raises(ValueError, match="upper_snap"):
            MidpointFloorEstimator(upper_snap=-1.0)


class TestSelectEstimator:
    def test_auto_altitude_only_is_midpoint(self):
        assert select_estimator("auto", multi_signal=False).name == "midpoint"

    def test_auto_multi_signal_is_nearest(self):
        est = select_estimator("auto", multi_signal=True, gps_agreement_bound=3.0)
        assert est.name == "nearest"
        assert est.max_difference == pytest.approx(3.0)

    def test_explicit(self):
        assert select_estimator("nearest").name == "nearest"
        est = select_estimator("midpoint", multi_signal=True, hysteresis_margin=0.5)
        assert isinstance(est, MidpointFloorEstimator)
        assert est.hysteresis_margin == pytest.approx(0.5)

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown altitude strategy"):
            select_estimator("kalman")
