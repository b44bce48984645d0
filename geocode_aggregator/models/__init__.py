"""
Value objects exchanged between callers, the aggregator and providers.
"""

from geocode_aggregator.models.address import Address, AddressBuilder
from geocode_aggregator.models.query import (
    DEFAULT_LIMIT,
    BatchQuery,
    GeocodeQuery,
    Query,
    QueryGroup,
    ReverseQuery,
    SuggestQuery,
)
from geocode_aggregator.models.results import ProviderFailure, ResultSet

__all__ = [
    "Address",
    "AddressBuilder",
    "DEFAULT_LIMIT",
    "BatchQuery",
    "GeocodeQuery",
    "Query",
    "QueryGroup",
    "ReverseQuery",
    "SuggestQuery",
    "ProviderFailure",
    "ResultSet",
]
