"""
Great-circle distance helpers shared by every retrieval tier.
"""

import math

EARTH_RADIUS_METERS = 6371e3
DEFAULT_RADIUS_METERS = 5000.0


def haversine_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Distance in meters between two coordinates given in degrees.

    Args:
        lat1: Latitude of the first point
        lng1: Longitude of the first point
        lat2: Latitude of the second point
        lng2: Longitude of the second point

    Returns:
        Distance in meters on a spherical Earth
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lng2 - lng1)

    a = (math.sin(delta_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_METERS * c


def within_radius(lat1: float, lng1: float, lat2: float, lng2: float, radius_meters: float) -> bool:
    """Check whether the second point lies within radius_meters of the first."""
    return haversine_distance(lat1, lng1, lat2, lng2) <= radius_meters
