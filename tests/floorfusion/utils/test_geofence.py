"""Unit tests for floorfusion/utils/geometry.py (geofence and floor-plan mapping).

Run with: pytest tests/floorfusion/utils/test_geofence.py -v
"""

import numpy as np
import pytest

from floorfusion.utils.geometry import (
    Bounds,
    BuildingFootprint,
    Coordinate,
    haversine_distance,
    is_within_bounding_box,
    map_position,
    point_in_polygon,
    polygon_bounds,
    polygon_centroid,
)

SCHOOL = [
    (14.767674, 121.07969),
    (14.768133, 121.07969),
    (14.768133, 121.079834),
    (14.767674, 121.079834),
]


class TestPointInPolygon:
    """Ray-casting inside test."""

    def test_center_of_square_is_inside(self):
        square = [(0, 0), (0, 1), (1, 1), (1, 0)]
        assert point_in_polygon((0.5, 0.5), square) is True

    def test_point_outside_square(self):
        square = [(0, 0), (0, 1), (1, 1), (1, 0)]
        assert point_in_polygon((1.5, 0.5), square) is False
        assert point_in_polygon((0.5, -0.5), square) is False

    def test_concave_polygon_notch_is_outside(self):
        # U shape open to the north: notch between lon 1 and 2
        u_shape = [(0, 0), (3, 0), (3, 1), (1, 1), (1, 2), (3, 2), (3, 3), (0, 3)]
        assert point_in_polygon((2.0, 1.5), u_shape) is False
        assert point_in_polygon((0.5, 1.5), u_shape) is True
        assert point_in_polygon((2.0, 0.5), u_shape) is True

    def test_degenerate_polygons_contain_nothing(self):
        assert point_in_polygon((0.0, 0.0), []) is False
        assert point_in_polygon((0.0, 0.0), [(0, 0)]) is False
        assert point_in_polygon((0.5, 0.5), [(0, 0), (1, 1)]) is False

    def test_deployment_footprint(self):
        assert point_in_polygon((14.7679, 121.07975), SCHOOL) is True
        assert point_in_polygon((14.7690, 121.07975), SCHOOL) is False

    def test_deterministic(self):
        results = {point_in_polygon((14.7679, 121.07975), SCHOOL) for _ in range(5)}
        assert results == {True}


class TestBuildingFootprint:
    """Footprint wrapper with unknown-coordinate handling."""

    def test_contains_none_when_coordinate_missing(self):
        fp = BuildingFootprint("School", SCHOOL)
        assert fp.contains(None, 121.07975) is None
        assert fp.contains(14.7679, None) is None
        assert fp.contains(None, None) is None

    def test_contains_inside_and_outside(self):
        fp = BuildingFootprint("School", SCHOOL)
        assert fp.contains(14.7679, 121.07975) is True
        assert fp.contains(14.7700, 121.07975) is False

    def test_corners_are_coordinates(self):
        fp = BuildingFootprint("School", SCHOOL)
        assert all(isinstance(c, Coordinate) for c in fp.corners)
        assert fp.corners[0].latitude == pytest.approx(14.767674)

    def test_bounds_and_centroid(self):
        fp = BuildingFootprint("School", SCHOOL)
        assert fp.bounds == Bounds(14.767674, 14.768133, 121.07969, 121.079834)
        assert fp.centroid.latitude == pytest.approx((14.767674 + 14.768133) / 2)
        assert fp.centroid.longitude == pytest.approx((121.07969 + 121.079834) / 2)
        assert fp.distance_to_centroid(*fp.centroid) == pytest.approx(0.0, abs=1e-6)


class TestHelpers:
    def test_haversine_one_degree_latitude(self):
        d = haversine_distance((0.0, 0.0), (1.0, 0.0))
        assert d == pytest.approx(111195.0, rel=1e-3)

    def test_haversine_symmetric(self):
        a, b = (14.7677, 121.0797), (14.7681, 121.0798)
        assert haversine_distance(a, b) == pytest.approx(haversine_distance(b, a))

    def test_polygon_centroid_and_bounds(self):
        square = [(0, 0), (0, 2), (2, 2), (2, 0)]
        assert polygon_centroid(square) == Coordinate(1.0, 1.0)
        assert polygon_bounds(square) == Bounds(0.0, 2.0, 0.0, 2.0)

    def test_empty_polygon_raises(self):
        with pytest.raises(ValueError):
            polygon_centroid([])
        with pytest.raises(ValueError):
            polygon_bounds([])

    def test_bounding_box(self):
        assert is_within_bounding_box(14.7679, 121.07975, SCHOOL)
        assert not is_within_bounding_box(14.7679, 121.0800, SCHOOL)


class TestMapPosition:
    bounds = Bounds(min_lat=10.0, max_lat=11.0, min_lon=20.0, max_lon=22.0)

    def test_corners(self):
        # North-west corner is the image's top-left
        assert map_position(11.0, 20.0, self.bounds) == pytest.approx((0.0, 0.0))
        assert map_position(10.0, 22.0, self.bounds) == pytest.approx((100.0, 100.0))

    def test_center(self):
        x, y = map_position(10.5, 21.0, self.bounds)
        np.testing.assert_allclose([x, y], [50.0, 50.0])

    def test_clamped_outside(self):
        x, y = map_position(12.0, 19.0, self.bounds)
        assert (x, y) == (0.0, 0.0)
        x, y = map_position(9.0, 30.0, self.bounds)
        assert (x, y) == (100.0, 100.0)

    def test_degenerate_bounds_raise(self):
        with pytest.raises(ValueError, match="Degenerate"):
            map_position(10.0, 20.0, Bounds(10.0, 10.0, 20.0, 21.0))
