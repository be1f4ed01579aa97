"""Great-circle distance calculations.

Haversine distance backs the route resolver's fallback estimate when the
directions provider cannot be reached, and the proximity filter used to
find pending rides near a driver.
"""

from math import atan2, cos, radians, sin, sqrt

EARTH_RADIUS_M = 6_371_000  # Earth radius in meters

# ~9e-6 degrees per meter (1 / 111,320 m per degree of latitude)
LAT_DEGREES_PER_METER: float = 1.0 / 111_320


def haversine_distance_m(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
) -> float:
    """Calculate the great-circle distance between two points in meters.

    Args:
        lat1: Latitude of first point in degrees
        lon1: Longitude of first point in degrees
        lat2: Latitude of second point in degrees
        lon2: Longitude of second point in degrees

    Returns:
        Distance between the two points in meters
    """
    lat1, lon1, lat2, lon2 = map(radians, [lat1, lon1, lat2, lon2])
    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * atan2(sqrt(a), sqrt(1 - a))

    return EARTH_RADIUS_M * c


def haversine_distance_km(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
) -> float:
    """Great-circle distance in kilometers. See haversine_distance_m."""
    return haversine_distance_m(lat1, lon1, lat2, lon2) / 1000.0


def bounding_deltas(lat: float, radius_m: float) -> tuple[float, float]:
    """Return (dlat, dlon) in degrees covering radius_m around a latitude.

    The longitude span widens with cos(lat); near the poles it is capped at
    the full 180 degrees.
    """
    dlat = radius_m * LAT_DEGREES_PER_METER
    cos_lat = cos(radians(lat))
    if cos_lat < 1e-6:
        return dlat, 180.0
    return dlat, min(dlat / cos_lat, 180.0)


def is_within_proximity(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
    threshold_m: float = 50.0,
) -> bool:
    """Check if two points lie within threshold_m meters of each other."""
    # Bounding box pre-check, widened by 1% so the edge never yields a
    # false negative.
    dlat, dlon = bounding_deltas(lat1, threshold_m * 1.01)
    if abs(lat2 - lat1) > dlat or abs(lon2 - lon1) > dlon:
        return False
    return haversine_distance_m(lat1, lon1, lat2, lon2) <= threshold_m
