"""
Core module providing shared configuration and utilities.

Usage:
    from geocode_aggregator.core import settings
    from geocode_aggregator.core.utils import haversine_distance
"""

from geocode_aggregator.core.config import settings, Settings

__all__ = [
    "settings",
    "Settings",
]
