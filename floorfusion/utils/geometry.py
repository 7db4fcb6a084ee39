"""
Geographic utilities for building geofencing.

Provides functions for:
- Point-in-polygon testing (ray casting) against a building footprint
- Great-circle distance between coordinates
- Footprint centroid, bounds and bounding-box checks
- Mapping a coordinate onto a floor-plan image (percent of bounds)

Coordinates are (latitude, longitude) pairs in degrees. All functions are
pure: identical inputs always give identical outputs.
"""

import math
from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

EARTH_RADIUS_M = 6371e3


class Coordinate(NamedTuple):
    latitude: float
    longitude: float


class Bounds(NamedTuple):
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float


def point_in_polygon(point: Sequence[float], polygon: Sequence[Sequence[float]]) -> bool:
    """
    Ray-casting inside test.

    For each polygon edge, a crossing is counted when the point's latitude
    straddles the edge's latitude range and the point lies on the lower
    longitude side of the edge at that latitude. The parity of the crossing
    count is the result. The polygon is closed implicitly.

    Args:
        point: (latitude, longitude).
        polygon: Ordered vertices [(latitude, longitude), ...].

    Returns:
        True if the point is inside. Polygons with fewer than 3 vertices
        contain nothing. Points exactly on an edge may go either way.

    Example:
        >>> square = [(0, 0), (0, 1), (1, 1), (1, 0)]
        >>> point_in_polygon((0.5, 0.5), square)
        True
        >>> point_in_polygon((1.5, 0.5), square)
        False
    """
    n = len(polygon)
    if n < 3:
        return False

    lat, lon = float(point[0]), float(point[1])
    inside = False
    j = n - 1
    for i in range(n):
        lat_i, lon_i = float(polygon[i][0]), float(polygon[i][1])
        lat_j, lon_j = float(polygon[j][0]), float(polygon[j][1])
        if (lat_i > lat) != (lat_j > lat):
            lon_cross = (lon_j - lon_i) * (lat - lat_i) / (lat_j - lat_i) + lon_i
            if lon < lon_cross:
                inside = not inside
        j = i
    return inside


def haversine_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Great-circle distance in meters between two (lat, lon) points."""
    phi1 = math.radians(a[0])
    phi2 = math.radians(b[0])
    d_phi = math.radians(b[0] - a[0])
    d_lambda = math.radians(b[1] - a[1])

    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def polygon_centroid(polygon: Sequence[Sequence[float]]) -> Coordinate:
    """Vertex average of the polygon (adequate for small footprints)."""
    if len(polygon) == 0:
        raise ValueError("polygon must have at least one vertex")
    pts = np.asarray(polygon, dtype=float)
    lat, lon = pts.mean(axis=0)
    return Coordinate(float(lat), float(lon))


def polygon_bounds(polygon: Sequence[Sequence[float]]) -> Bounds:
    if len(polygon) == 0:
        raise ValueError("polygon must have at least one vertex")
    pts = np.asarray(polygon, dtype=float)
    return Bounds(
        min_lat=float(pts[:, 0].min()),
        max_lat=float(pts[:, 0].max()),
        min_lon=float(pts[:, 1].min()),
        max_lon=float(pts[:, 1].max()),
    )


def is_within_bounding_box(
    latitude: float, longitude: float, polygon: Sequence[Sequence[float]]
) -> bool:
    b = polygon_bounds(polygon)
    return b.min_lat <= latitude <= b.max_lat and b.min_lon <= longitude <= b.max_lon


def map_position(latitude: float, longitude: float, bounds: Bounds) -> Tuple[float, float]:
    """
    Place a coordinate on a north-up floor-plan image.

    Args:
        latitude: Degrees.
        longitude: Degrees.
        bounds: Geographic extent covered by the image.

    Returns:
        (x, y) in percent of image width/height, each clamped to [0, 100].
        x grows eastward, y grows southward (image rows).
    """
    lat_span = bounds.max_lat - bounds.min_lat
    lon_span = bounds.max_lon - bounds.min_lon
    if lat_span <= 0 or lon_span <= 0:
        raise ValueError(f"Degenerate bounds: {bounds}")

    lat_pct = (latitude - bounds.min_lat) / lat_span
    lon_pct = (longitude - bounds.min_lon) / lon_span
    x = float(np.clip(lon_pct * 100.0, 0.0, 100.0))
    y = float(np.clip((1.0 - lat_pct) * 100.0, 0.0, 100.0))
    return x, y


@dataclass(frozen=True)
class BuildingFootprint:
    """Building outline used to gate indoor floor logic."""

    name: str
    corners: List[Coordinate] = field(default_factory=list)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "corners", [Coordinate(float(c[0]), float(c[1])) for c in self.corners]
        )

    def contains(self, latitude: Optional[float], longitude: Optional[float]) -> Optional[bool]:
        """Inside test, or None when either coordinate is missing."""
        if latitude is None or longitude is None:
            return None
        return point_in_polygon((latitude, longitude), self.corners)

    @property
    def bounds(self) -> Bounds:
        return polygon_bounds(self.corners)

    @property
    def centroid(self) -> Coordinate:
        return polygon_centroid(self.corners)

    def distance_to_centroid(self, latitude: float, longitude: float) -> float:
        return haversine_distance((latitude, longitude), self.centroid)
