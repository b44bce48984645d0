"""
Geographic helpers shared by the query model and the facade.

- Coordinate validation (WGS84 ranges)
- Haversine distance between two points

Usage:
    from geocode_aggregator.core.utils.geo import haversine_distance, is_valid_coordinate

    is_valid_coordinate(55.7558, 37.6173)  # True
    haversine_distance(55.7558, 37.6173, 55.7539, 37.6208)  # ~300 meters
"""

import math
from typing import Literal, Optional

EARTH_RADIUS_METERS = 6_371_000
EARTH_RADIUS_KM = 6_371
EARTH_RADIUS_MILES = 3_958.8

DistanceUnit = Literal['meters', 'kilometers', 'miles']


def haversine_distance(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
    unit: DistanceUnit = 'meters'
) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    Args:
        lat1: Latitude of first point in decimal degrees
        lon1: Longitude of first point in decimal degrees
        lat2: Latitude of second point in decimal degrees
        lon2: Longitude of second point in decimal degrees
        unit: Unit for the result ('meters', 'kilometers', 'miles')

    Returns:
        Distance between the two points in the specified unit
    """
    earth_radius = {
        'meters': EARTH_RADIUS_METERS,
        'kilometers': EARTH_RADIUS_KM,
        'miles': EARTH_RADIUS_MILES,
    }.get(unit, EARTH_RADIUS_METERS)

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_phi / 2) ** 2 +
        math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return earth_radius * c


def is_valid_latitude(lat: Optional[float]) -> bool:
    return lat is not None and not math.isnan(lat) and -90.0 <= lat <= 90.0


def is_valid_longitude(lng: Optional[float]) -> bool:
    return lng is not None and not math.isnan(lng) and -180.0 <= lng <= 180.0


def is_valid_coordinate(lat: Optional[float], lng: Optional[float]) -> bool:
    """
    Check that a latitude/longitude pair is present and inside WGS84 ranges.

    Example:
        >>> is_valid_coordinate(55.75, 37.61)
        True
        >>> is_valid_coordinate(95.0, 37.61)
        False
    """
    return is_valid_latitude(lat) and is_valid_longitude(lng)
