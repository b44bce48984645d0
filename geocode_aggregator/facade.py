"""
Geocoding facade providing a simple interface to the configured providers.

The process-wide Aggregator is built once from settings (GEOCODE_PROVIDERS,
DADATA_API_TOKEN, ...) and reused by every convenience coroutine here.
"""

import asyncio
import logging
from functools import lru_cache
from typing import Dict, Iterable, List, Optional, Union

from geocode_aggregator.aggregator import Aggregator
from geocode_aggregator.core import settings
from geocode_aggregator.core.utils.geo import haversine_distance
from geocode_aggregator.errors import InvalidServerResponse
from geocode_aggregator.models import (
    DEFAULT_LIMIT,
    Address,
    BatchQuery,
    GeocodeQuery,
    QueryGroup,
    ResultSet,
    ReverseQuery,
    SuggestQuery,
)

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_aggregator() -> Aggregator:
    """
    Get the shared Aggregator instance (singleton).

    Raises:
        ConfigurationError: if GEOCODE_PROVIDERS names an unknown provider
    """
    aggregator = Aggregator.from_config(settings.provider_descriptors())
    if not len(aggregator):
        logger.warning("No geocoding providers configured")
    else:
        logger.debug(f"Aggregator ready with providers: {aggregator.provider_names}")
    return aggregator


def reset_aggregator() -> None:
    """Drop the cached Aggregator (useful for testing or after changing settings)."""
    get_aggregator.cache_clear()


async def geocode_address(
    address: str,
    provider: Optional[str] = None,
    group_by: Union[QueryGroup, str] = QueryGroup.NONE,
    limit: int = DEFAULT_LIMIT,
    aggregator: Optional[Aggregator] = None,
) -> Optional[Address]:
    """
    Geocode a single address.

    Args:
        address: Free-form address text
        provider: Pin a provider by name; otherwise the first hit wins
        group_by: Result granularity
        limit: Maximum results requested from each provider
        aggregator: Aggregator to use (default: get_aggregator())

    Returns:
        Address if found, None otherwise

    Example:
        result = await geocode_address("Moscow, Tverskaya 1", provider="DaData.ru")
    """
    aggregator = aggregator or get_aggregator()
    query = GeocodeQuery(address, group_by=group_by, limit=limit)
    return await aggregator.geocode(query, provider=provider)


async def reverse_geocode(
    latitude: float,
    longitude: float,
    provider: Optional[str] = None,
    group_by: Union[QueryGroup, str] = QueryGroup.NONE,
    aggregator: Optional[Aggregator] = None,
) -> Optional[Address]:
    """Resolve coordinates to an address."""
    aggregator = aggregator or get_aggregator()
    query = ReverseQuery.from_coordinates(latitude, longitude, group_by=group_by)
    return await aggregator.reverse(query, provider=provider)


async def suggest_addresses(
    text: str,
    provider: Optional[str] = None,
    limit: int = DEFAULT_LIMIT,
    aggregator: Optional[Aggregator] = None,
) -> ResultSet[str]:
    """Autocomplete candidates from one provider or from all of them."""
    aggregator = aggregator or get_aggregator()
    return await aggregator.suggest(SuggestQuery(text, limit=limit), provider=provider)


async def geocode_batch(
    addresses: Iterable[str],
    provider: Optional[str] = None,
    group_by: Union[QueryGroup, str] = QueryGroup.NONE,
    aggregator: Optional[Aggregator] = None,
) -> ResultSet[Address]:
    """
    Geocode multiple addresses.

    Example:
        results = await geocode_batch(["Moscow, Red Square", "Kazan, Baumana 1"])
        for failure in results.errors:
            print(failure.provider, failure.query_text)
    """
    aggregator = aggregator or get_aggregator()
    batch = BatchQuery([GeocodeQuery(text, group_by=group_by) for text in addresses])
    return await aggregator.batch(batch, provider=provider)


async def compare_providers(
    address: str,
    providers: Optional[List[str]] = None,
    aggregator: Optional[Aggregator] = None,
    timeout: Optional[float] = None,
) -> Dict[str, Optional[Address]]:
    """
    Compare geocoding results from multiple providers.

    Useful for validating accuracy or finding discrepancies. Providers are
    queried concurrently; a failing provider maps to None.

    Args:
        address: Address to geocode
        providers: Provider names to compare (default: all registered)
        timeout: Seconds allowed per provider (default: the aggregator timeout)

    Returns:
        Dict mapping provider name to result
    """
    aggregator = aggregator or get_aggregator()
    names = providers if providers is not None else aggregator.provider_names
    query = GeocodeQuery(address)

    async def one(name: str) -> Optional[Address]:
        try:
            return await aggregator.geocode(query, provider=name, timeout=timeout)
        except InvalidServerResponse as e:
            logger.warning(f"compare: {e}")
            return None

    found = await asyncio.gather(*(one(name) for name in names))
    results = dict(zip(names, found))

    # Calculate distances between results
    valid_results = {k: v for k, v in results.items() if v is not None and v.longitude is not None}
    if len(valid_results) > 1:
        provider_names = list(valid_results.keys())
        for i, p1 in enumerate(provider_names):
            for p2 in provider_names[i+1:]:
                r1, r2 = valid_results[p1], valid_results[p2]
                dist = haversine_distance(
                    r1.latitude, r1.longitude,
                    r2.latitude, r2.longitude
                )
                logger.info(f"Distance {p1} vs {p2}: {dist:.1f}m")

    return results
