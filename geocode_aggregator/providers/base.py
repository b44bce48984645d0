"""
Base class and capability contract for geocoding providers.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from geocode_aggregator.core import settings
from geocode_aggregator.errors import InvalidServerResponse
from geocode_aggregator.models import (
    Address,
    BatchQuery,
    GeocodeQuery,
    ProviderFailure,
    Query,
    ResultSet,
    ReverseQuery,
    SuggestQuery,
)

logger = logging.getLogger(__name__)


class BaseProvider(ABC):
    """
    Abstract base class for upstream geocoding integrations.

    Subclasses must implement:
    - name: Stable identifier, used as registry key and stamped on results
    - geocode(): Forward geocode a single query
    - reverse(): Reverse geocode a single query
    - suggest(): Autocomplete candidates for a single query

    Optional overrides:
    - batch(): Execute a whole batch (default runs queries concurrently)

    Adapters must raise InvalidServerResponse for any transport or payload
    failure. An empty result list is not an error.
    """

    #: Queries of one batch evaluated at the same time
    batch_concurrency: Optional[int] = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Name of the geocoding provider."""
        pass

    def get_name(self) -> str:
        return self.name

    @abstractmethod
    async def geocode(self, query: GeocodeQuery) -> Optional[Address]:
        """
        Resolve address text to the first result that carries coordinates.

        Returns:
            Address if found, None if nothing usable came back

        Raises:
            InvalidServerResponse: if the upstream call failed
        """
        pass

    @abstractmethod
    async def reverse(self, query: ReverseQuery) -> Optional[Address]:
        """Resolve coordinates to an address, same contract as geocode()."""
        pass

    @abstractmethod
    async def suggest(self, query: SuggestQuery) -> List[str]:
        """Return candidate formatted addresses; empty list when nothing matches."""
        pass

    def supports(self, query: Query) -> bool:
        """Whether batch() knows how to evaluate this query kind."""
        return isinstance(query, (GeocodeQuery, ReverseQuery))

    async def batch(self, batch: BatchQuery) -> ResultSet[Address]:
        """
        Execute every supported query of the batch against this provider.

        Unsupported kinds are skipped. A failing query is recorded in
        ResultSet.errors and does not affect the others. Addresses without a
        latitude are dropped. Results keep the batch order.
        """
        queries = [query for query in batch if self.supports(query)]
        skipped = len(batch) - len(queries)
        if skipped:
            logger.debug(f"{self.name}: skipping {skipped} unsupported queries in batch")

        if not queries:
            return ResultSet()

        semaphore = asyncio.Semaphore(self.batch_concurrency or settings.BATCH_CONCURRENCY)

        async def run_one(query: Query):
            async with semaphore:
                try:
                    return await self._dispatch(query), None
                except InvalidServerResponse as e:
                    logger.warning(f"{self.name}: batch query failed: {e}")
                    return None, ProviderFailure.from_error(e)

        outcomes = await asyncio.gather(*(run_one(query) for query in queries))

        return ResultSet(
            (address for address, _ in outcomes if address is not None and address.has_coordinates),
            (failure for _, failure in outcomes if failure is not None),
        )

    async def _dispatch(self, query: Query) -> Optional[Address]:
        if isinstance(query, GeocodeQuery):
            return await self.geocode(query)
        if isinstance(query, ReverseQuery):
            return await self.reverse(query)
        return None

    @staticmethod
    def first_with_coordinates(addresses: Iterable[Address]) -> Optional[Address]:
        """Pick the first address that has a latitude; partial results are dropped."""
        for address in addresses:
            if address.has_coordinates:
                return address
        return None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r}>"
