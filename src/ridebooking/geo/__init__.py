"""Coordinates, geo-fencing and great-circle distance."""

from .coordinates import Coordinate
from .distance import haversine_distance_km, haversine_distance_m, is_within_proximity
from .validator import BoundingBox, GeoValidator

__all__ = [
    "BoundingBox",
    "Coordinate",
    "GeoValidator",
    "haversine_distance_km",
    "haversine_distance_m",
    "is_within_proximity",
]
