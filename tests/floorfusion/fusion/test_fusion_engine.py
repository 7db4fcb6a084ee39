"""Unit tests for floorfusion/fusion/engine.py (priority-cascade fusion).

Run with: pytest tests/floorfusion/fusion/test_fusion_engine.py -v
"""

import pytest

from floorfusion.config import FusionConfig
from floorfusion.fingerprinting.matcher import FingerprintMatch, match_fingerprint
from floorfusion.floors import AltitudeReference, Floor, FloorPlan, default_floor_plan
from floorfusion.fusion.engine import FloorFusionEngine
from floorfusion.fusion.types import FloorSource, SignalSnapshot


def surveyed_plan(reference=AltitudeReference.RELATIVE, base=0.0):
    return FloorPlan(
        [
            Floor("f0", "ground", "Ground", altitude=base, wifi_fingerprint={"aa": -40.0, "bb": -80.0}),
            Floor("f1", "first", "First", altitude=base + 4.0, wifi_fingerprint={"aa": -60.0, "bb": -60.0}),
            Floor("f2", "second", "Second", altitude=base + 8.0, wifi_fingerprint={"aa": -80.0, "bb": -40.0}),
        ],
        reference,
    )


def match(plan, value, distance=3.0):
    return FingerprintMatch(floor=plan[plan.index_of(value)], distance=distance)


class TestSignalSnapshot:
    def test_defaults_are_empty(self):
        assert SignalSnapshot().is_empty
        assert not SignalSnapshot(barometric_altitude=0.0).is_empty

    def test_imu_delta_must_be_int(self):
        with pytest.raises(TypeError):
            SignalSnapshot(imu_delta=1.0)


class TestInitialState:
    def test_starts_on_ground_floor(self):
        engine = FloorFusionEngine(default_floor_plan())
        assert engine.current_floor.value == "ground"
        assert engine.on_ground_floor

    def test_configured_initial_floor(self):
        engine = FloorFusionEngine(default_floor_plan(), FusionConfig(initial_floor="third"))
        assert engine.current_floor.value == "third"

    def test_unknown_initial_floor(self):
        with pytest.raises(ValueError, match="roof"):
            FloorFusionEngine(default_floor_plan(), FusionConfig(initial_floor="roof"))

    def test_estimator_follows_signal_availability(self):
        assert FloorFusionEngine(default_floor_plan()).estimator.name == "midpoint"
        assert FloorFusionEngine(surveyed_plan()).estimator.name == "nearest"
        assert FloorFusionEngine(default_floor_plan(), multi_signal=True).estimator.name == "nearest"


class TestCascade:
    def test_empty_snapshot_keeps_floor(self):
        engine = FloorFusionEngine(default_floor_plan())
        est = engine.tick(SignalSnapshot())
        assert est.floor.value == "ground"
        assert est.source == FloorSource.UNCHANGED
        assert not est.changed

    def test_barometric_altitude_only(self):
        engine = FloorFusionEngine(default_floor_plan())
        est = engine.tick(SignalSnapshot(barometric_altitude=4.2))
        assert est.floor.value == "first"
        assert est.source == FloorSource.ALTITUDE
        assert est.changed

    def test_imu_delta_moves_floor(self):
        engine = FloorFusionEngine(default_floor_plan())
        assert engine.tick(SignalSnapshot(imu_delta=1)).floor.value == "first"
        est = engine.tick(SignalSnapshot(imu_delta=-2))
        assert est.floor.value == "gymnasium"
        assert est.source == FloorSource.IMU

    def test_imu_delta_clamped(self):
        engine = FloorFusionEngine(default_floor_plan())
        assert engine.tick(SignalSnapshot(imu_delta=10)).index == 5
        assert engine.tick(SignalSnapshot(imu_delta=-10)).index == 0

    def test_wifi_overrides_imu(self):
        plan = surveyed_plan()
        engine = FloorFusionEngine(plan)
        est = engine.tick(SignalSnapshot(imu_delta=1, wifi_match=match(plan, "second")))
        assert est.floor.value == "second"
        assert est.source == FloorSource.WIFI

    def test_altitude_overrides_wifi(self):
        plan = surveyed_plan()
        engine = FloorFusionEngine(plan)
        est = engine.tick(SignalSnapshot(
            imu_delta=1,
            wifi_match=match(plan, "second"),
            barometric_altitude=0.3,
        ))
        assert est.floor.value == "ground"
        assert est.source == FloorSource.ALTITUDE

    def test_disagreeing_altitude_defers_to_wifi(self):
        plan = surveyed_plan()
        engine = FloorFusionEngine(plan)
        # 30 m is beyond the agreement bound of every floor
        est = engine.tick(SignalSnapshot(wifi_match=match(plan, "first"), barometric_altitude=30.0))
        assert est.floor.value == "first"
        assert est.source == FloorSource.WIFI

    def test_live_scan_matched_through_fingerprints(self):
        plan = surveyed_plan()
        engine = FloorFusionEngine(plan)
        live = {"aa": -78.0, "bb": -43.0}
        est = engine.tick(SignalSnapshot(wifi_match=match_fingerprint(live, plan.floors)))
        assert est.floor.value == "second"

    def test_wifi_match_for_unknown_floor_ignored(self):
        plan = surveyed_plan()
        engine = FloorFusionEngine(plan)
        stranger = FingerprintMatch(Floor("x", "attic", "Attic"), 1.0)
        est = engine.tick(SignalSnapshot(wifi_match=stranger))
        assert est.floor.value == "ground"
        assert est.source == FloorSource.UNCHANGED


class TestGeofence:
    def test_outside_freezes_floor(self):
        plan = surveyed_plan()
        engine = FloorFusionEngine(plan)
        est = engine.tick(SignalSnapshot(
            imu_delta=1,
            wifi_match=match(plan, "second"),
            barometric_altitude=8.0,
            inside_building=False,
        ))
        assert est.floor.value == "ground"
        assert est.source == FloorSource.UNCHANGED
        assert engine.state.inside_building is False
        assert engine.state.last_imu_delta == 1

    def test_unknown_position_does_not_freeze(self):
        engine = FloorFusionEngine(default_floor_plan())
        est = engine.tick(SignalSnapshot(barometric_altitude=8.0, inside_building=None))
        assert est.floor.value == "second"


class TestAltitudeConvention:
    def test_absolute_plan_uses_gps(self):
        plan = surveyed_plan(AltitudeReference.ABSOLUTE, base=50.0)
        engine = FloorFusionEngine(plan)
        est = engine.tick(SignalSnapshot(gps_altitude=53.9, barometric_altitude=0.0))
        assert est.floor.value == "first"

    def test_absolute_plan_ignores_barometer(self):
        plan = surveyed_plan(AltitudeReference.ABSOLUTE, base=50.0)
        engine = FloorFusionEngine(plan)
        est = engine.tick(SignalSnapshot(barometric_altitude=4.0))
        assert est.source == FloorSource.UNCHANGED

    def test_relative_plan_falls_back_to_gps(self):
        engine = FloorFusionEngine(default_floor_plan())
        est = engine.tick(SignalSnapshot(gps_altitude=8.0))
        assert est.floor.value == "second"
        assert est.source == FloorSource.ALTITUDE
        assert engine.state.last_gps_altitude == pytest.approx(8.0)

    def test_relative_plan_subtracts_ground_altitude(self):
        engine = FloorFusionEngine(default_floor_plan(), ground_altitude=50.0)
        assert engine.tick(SignalSnapshot(gps_altitude=54.2)).floor.value == "first"

    def test_relative_plan_prefers_barometer(self):
        engine = FloorFusionEngine(default_floor_plan())
        est = engine.tick(SignalSnapshot(gps_altitude=8.0, barometric_altitude=4.1))
        assert est.floor.value == "first"

    def test_gps_near_upper_floor_inside(self):
        plan = FloorPlan([
            Floor("f0", "ground", "Ground", altitude=0.0),
            Floor("f1", "first", "First", altitude=4.0),
        ])
        for multi_signal in (False, True):
            engine = FloorFusionEngine(plan, multi_signal=multi_signal)
            est = engine.tick(SignalSnapshot(gps_altitude=3.9, inside_building=True))
            assert est.floor.value == "first"


class TestStateAndSelection:
    def test_state_records_latest_signals(self):
        plan = surveyed_plan()
        engine = FloorFusionEngine(plan)
        m = match(plan, "first")
        engine.tick(SignalSnapshot(wifi_match=m, gps_altitude=51.0, barometric_altitude=4.1))
        engine.tick(SignalSnapshot())
        state = engine.state
        assert state.ticks == 2
        assert state.last_wifi_match is None
        assert state.last_source == FloorSource.ALTITUDE

    def test_reset(self):
        engine = FloorFusionEngine(default_floor_plan())
        engine.tick(SignalSnapshot(imu_delta=2))
        engine.reset()
        assert engine.current_floor.value == "ground"
        assert engine.state.ticks == 0
        assert engine.state.last_source == FloorSource.UNCHANGED

    def test_select_floor(self):
        engine = FloorFusionEngine(default_floor_plan())
        est = engine.select_floor("third")
        assert est.index == 4
        assert est.source == FloorSource.MANUAL
        assert est.changed
        assert not engine.select_floor("third").changed
        with pytest.raises(ValueError):
            engine.select_floor("roof")

    def test_select_floor_by_id(self):
        engine = FloorFusionEngine(default_floor_plan())
        assert engine.select_floor_by_id("floor-5").floor.value == "fourth"
        assert engine.select_floor_by_id("unknown-qr") is None
        assert engine.current_floor.value == "fourth"

    def test_set_plan_keeps_floor_by_value(self):
        plan = default_floor_plan()
        engine = FloorFusionEngine(plan)
        engine.select_floor("second")
        engine.set_plan(plan.with_fingerprints([Floor("z", "second", "S", wifi_fingerprint={"aa": -50.0})]))
        assert engine.current_floor.value == "second"
        assert engine.current_floor.has_fingerprint

    def test_set_plan_reselects_estimator(self):
        engine = FloorFusionEngine(default_floor_plan())
        assert engine.estimator.name == "midpoint"
        engine.set_plan(surveyed_plan())
        assert engine.multi_signal
        assert engine.estimator.name == "nearest"
        engine.set_plan(default_floor_plan(), multi_signal=False)
        assert engine.estimator.name == "midpoint"

    def test_set_plan_clamps_when_floor_missing(self):
        engine = FloorFusionEngine(default_floor_plan())
        engine.select_floor("fourth")
        engine.set_plan(FloorPlan([Floor("a", "ground", "G"), Floor("b", "first", "F")]))
        assert engine.current_floor.value == "first"
