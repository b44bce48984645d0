"""
Upstream provider adapters.

Available implementations:
- DaDataProvider: DaData.ru suggestions and geolocation
- NominatimProvider: OpenStreetMap Nominatim
"""

from geocode_aggregator.providers.base import BaseProvider
from geocode_aggregator.providers.dadata import DaDataProvider
from geocode_aggregator.providers.nominatim import NominatimProvider
from geocode_aggregator.providers.transport import AiohttpTransport, RequestsTransport, Transport

__all__ = [
    "BaseProvider",
    "DaDataProvider",
    "NominatimProvider",
    "AiohttpTransport",
    "RequestsTransport",
    "Transport",
]
