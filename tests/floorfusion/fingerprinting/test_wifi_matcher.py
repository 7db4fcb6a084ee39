"""Unit tests for floorfusion/fingerprinting/matcher.py.

Tests cover:
    - Euclidean distance over the BSSID union with missing-RSSI fill
    - Nearest-neighbor ranking
    - Threshold rejection and the "nothing to compare" cases

Run with: pytest tests/floorfusion/fingerprinting/test_wifi_matcher.py -v
"""

import numpy as np
import pytest

from floorfusion.floors import Floor
from floorfusion.fingerprinting.matcher import (
    MISSING_RSSI,
    fingerprint_distance,
    match_fingerprint,
    rank_floors,
)


def surveyed_floors():
    return [
        Floor("f0", "ground", "Ground", wifi_fingerprint={"aa": -40.0, "bb": -70.0}),
        Floor("f1", "first", "First", wifi_fingerprint={"aa": -70.0, "bb": -40.0}),
        Floor("f2", "second", "Second"),
    ]


class TestFingerprintDistance:
    def test_identical_is_zero(self):
        fp = {"aa": -50.0, "bb": -60.0}
        assert fingerprint_distance(fp, fp) == 0.0

    def test_shared_bssids(self):
        assert fingerprint_distance({"aa": -50.0}, {"aa": -53.0}) == pytest.approx(3.0)

    def test_missing_bssid_uses_floor_value(self):
        # bb missing on the live side counts as -100 dBm
        d = fingerprint_distance({"aa": -50.0}, {"aa": -50.0, "bb": -60.0})
        assert d == pytest.approx(40.0)

    def test_disjoint(self):
        d = fingerprint_distance({"a": -50.0}, {"b": -50.0})
        assert d == pytest.approx(np.sqrt(2) * 50.0)

    def test_both_empty(self):
        assert fingerprint_distance({}, {}) == 0.0

    def test_symmetric(self):
        a = {"x": -45.0, "y": -80.0}
        b = {"y": -75.0, "z": -60.0}
        assert fingerprint_distance(a, b) == pytest.approx(fingerprint_distance(b, a))

    def test_custom_missing_rssi(self):
        assert MISSING_RSSI == -100.0
        d = fingerprint_distance({"a": -50.0}, {}, missing_rssi=-90.0)
        assert d == pytest.approx(40.0)


class TestRankFloors:
    def test_nearest_first_and_unsurveyed_skipped(self):
        ranked = rank_floors({"aa": -68.0, "bb": -42.0}, surveyed_floors())
        assert [floor.value for floor, _ in ranked] == ["first", "ground"]
        assert ranked[0][1] < ranked[1][1]

    def test_ties_keep_floor_order(self):
        floors = [
            Floor("a", "x", "X", wifi_fingerprint={"ap": -50.0}),
            Floor("b", "y", "Y", wifi_fingerprint={"ap": -50.0}),
        ]
        ranked = rank_floors({"ap": -50.0}, floors)
        assert [f.value for f, _ in ranked] == ["x", "y"]


class TestMatchFingerprint:
    def test_accepts_close_match(self):
        match = match_fingerprint({"aa": -42.0, "bb": -68.0}, surveyed_floors())
        assert match is not None
        assert match.floor.value == "ground"
        assert match.distance == pytest.approx(np.sqrt(8.0))

    def test_rejects_far_match(self):
        # Nearest floor is still ~21 away
        assert match_fingerprint({"aa": -55.0, "bb": -55.0}, surveyed_floors()) is None

    def test_threshold_is_exclusive(self):
        floors = [Floor("a", "g", "G", wifi_fingerprint={"ap": -50.0})]
        assert match_fingerprint({"ap": -70.0}, floors) is None
        assert match_fingerprint({"ap": -69.0}, floors).distance == pytest.approx(19.0)

    def test_custom_threshold(self):
        floors = [Floor("a", "g", "G", wifi_fingerprint={"ap": -50.0})]
        assert match_fingerprint({"ap": -70.0}, floors, threshold=25.0) is not None

    def test_empty_live_fingerprint(self):
        assert match_fingerprint({}, surveyed_floors()) is None

    def test_no_surveyed_floors(self):
        floors = [Floor("a", "g", "G"), Floor("b", "h", "H")]
        assert match_fingerprint({"ap": -50.0}, floors) is None

    def test_deterministic(self):
        live = {"aa": -45.0, "bb": -66.0}
        results = {match_fingerprint(live, surveyed_floors()).floor.value for _ in range(5)}
        assert results == {"ground"}
