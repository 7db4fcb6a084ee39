"""
Utility functions for floor localization.

This module provides the geometric helpers used to gate indoor logic on the
building footprint and to place a user marker on a floor-plan image.
"""

from .geometry import (
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

__all__ = [
    'Bounds',
    'BuildingFootprint',
    'Coordinate',
    'haversine_distance',
    'is_within_bounding_box',
    'map_position',
    'point_in_polygon',
    'polygon_bounds',
    'polygon_centroid',
]
