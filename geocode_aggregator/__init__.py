"""
Geocoding aggregation layer.

Dispatches forward geocode, reverse geocode, autocomplete and batch
requests to pluggable upstream providers and normalizes their answers
into a single Address representation:
- DaData: DaData.ru suggestions/geolocate API (token required)
- Nominatim: OpenStreetMap (free, 1 req/sec on the public instance)

Usage:
    from geocode_aggregator import Aggregator, GeocodeQuery, SuggestQuery

    aggregator = Aggregator.from_config([
        {"identifier": "dadata", "parameters": {"token": "..."}},
        {"identifier": "nominatim", "parameters": {"user_agent": "MyApp/1.0"}},
    ])

    # First provider with a result wins
    address = await aggregator.geocode(GeocodeQuery("Moscow, Tverskaya 1"))

    # Pin a provider
    address = await aggregator.geocode(GeocodeQuery("Moscow"), provider="nominatim")

    # Fan out to every provider
    suggestions = await aggregator.suggest(SuggestQuery("Moscow, Tver"))
"""

from geocode_aggregator.aggregator import Aggregator
from geocode_aggregator.errors import (
    ConfigurationError,
    GeocodeError,
    InvalidQueryError,
    InvalidServerResponse,
    ProviderTimeoutError,
    UnknownProviderError,
)
from geocode_aggregator.models import (
    Address,
    AddressBuilder,
    BatchQuery,
    GeocodeQuery,
    ProviderFailure,
    Query,
    QueryGroup,
    ResultSet,
    ReverseQuery,
    SuggestQuery,
)
from geocode_aggregator.providers import BaseProvider, DaDataProvider, NominatimProvider
from geocode_aggregator.registry import PROVIDER_FACTORIES, ProviderDescriptor
from geocode_aggregator.facade import (
    get_aggregator,
    geocode_address,
    reverse_geocode,
    suggest_addresses,
    geocode_batch,
    compare_providers,
)

__version__ = "1.0.0"

__all__ = [
    # Aggregator
    "Aggregator",
    # Errors
    "GeocodeError",
    "ConfigurationError",
    "UnknownProviderError",
    "InvalidServerResponse",
    "ProviderTimeoutError",
    "InvalidQueryError",
    # Models
    "Address",
    "AddressBuilder",
    "BatchQuery",
    "GeocodeQuery",
    "ProviderFailure",
    "Query",
    "QueryGroup",
    "ResultSet",
    "ReverseQuery",
    "SuggestQuery",
    # Providers
    "BaseProvider",
    "DaDataProvider",
    "NominatimProvider",
    "PROVIDER_FACTORIES",
    "ProviderDescriptor",
    # Convenience functions
    "get_aggregator",
    "geocode_address",
    "reverse_geocode",
    "suggest_addresses",
    "geocode_batch",
    "compare_providers",
]
