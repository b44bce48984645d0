"""
Shared utility functions.

Modules:
- geo: Coordinate validation and distance calculations
"""

from geocode_aggregator.core.utils.geo import (
    haversine_distance,
    is_valid_coordinate,
    is_valid_latitude,
    is_valid_longitude,
)

__all__ = [
    "haversine_distance",
    "is_valid_coordinate",
    "is_valid_latitude",
    "is_valid_longitude",
]
