"""
Aggregator: provider registry and query routing.

Single queries (geocode, reverse) short-circuit: providers are consulted
one after another in registration order and the first usable address wins.
Fan-out operations (suggest, batch) call every provider concurrently and
join the results in registration order; a failing provider contributes
nothing and its error is reported in ResultSet.errors.

Usage:
    aggregator = Aggregator().register_provider(DaDataProvider(token="..."))
    address = await aggregator.geocode(GeocodeQuery("Moscow, Red Square"))
    suggestions = await aggregator.suggest(SuggestQuery("Moscow, Tver"))
    results = await aggregator.batch(BatchQuery([...]))
    print(results.errors)
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Tuple, TypeVar

from geocode_aggregator.core import settings
from geocode_aggregator.errors import (
    InvalidQueryError,
    InvalidServerResponse,
    ProviderTimeoutError,
    UnknownProviderError,
)
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
from geocode_aggregator.providers.base import BaseProvider
from geocode_aggregator.registry import DescriptorLike, build_provider

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Aggregator:
    """
    Registry of providers keyed by name, plus the dispatch logic.

    Registering a provider under a name that is already taken replaces the
    previous instance (last registration wins) and keeps the original
    position in registration order.
    """

    def __init__(self, providers: Iterable[BaseProvider] = (), timeout: Optional[float] = None):
        """
        Args:
            providers: Providers to register, in order
            timeout: Seconds allowed per provider call (default: settings.PROVIDER_TIMEOUT)
        """
        self._providers: Dict[str, BaseProvider] = {}
        self.timeout = timeout if timeout is not None else settings.PROVIDER_TIMEOUT

        for provider in providers:
            self.register_provider(provider)

    @classmethod
    def from_config(
        cls,
        descriptors: Iterable[DescriptorLike],
        timeout: Optional[float] = None,
    ) -> "Aggregator":
        return cls(timeout=timeout).register_providers_from_config(descriptors)

    # ==========================================================================
    # Registry
    # ==========================================================================

    def register_provider(self, provider: BaseProvider) -> "Aggregator":
        """Insert or replace the entry under provider.name. Returns self for chaining."""
        name = provider.name
        if name in self._providers:
            logger.info(f"Replacing provider {name}: {self._providers[name]!r} -> {provider!r}")
        else:
            logger.debug(f"Registering provider {name}")

        self._providers[name] = provider
        return self

    def register_providers_from_config(self, descriptors: Iterable[DescriptorLike]) -> "Aggregator":
        """
        Build and register providers from descriptors.

        Every entry is built before any is registered, so a ConfigurationError
        leaves the registry untouched.

        Raises:
            ConfigurationError: unknown identifier or bad parameters
        """
        built = [build_provider(entry, index) for index, entry in enumerate(descriptors)]
        for provider in built:
            self.register_provider(provider)
        return self

    def get_provider(self, name: str) -> BaseProvider:
        try:
            return self._providers[name]
        except KeyError:
            raise UnknownProviderError(name, list(self._providers)) from None

    @property
    def providers(self) -> Tuple[BaseProvider, ...]:
        """Registered providers in registration order."""
        return tuple(self._providers.values())

    @property
    def provider_names(self) -> List[str]:
        return list(self._providers)

    def __contains__(self, name: str) -> bool:
        return name in self._providers

    def __len__(self) -> int:
        return len(self._providers)

    # ==========================================================================
    # Single queries (short-circuit)
    # ==========================================================================

    async def geocode(
        self,
        query: GeocodeQuery,
        provider: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Optional[Address]:
        """
        Geocode with the named provider, or with the first provider that
        finds something.

        Raises:
            UnknownProviderError: the named provider is not registered
            InvalidServerResponse: a consulted provider failed or timed out
        """
        self._check_kind(query, GeocodeQuery)
        return await self._first_result(query, provider, timeout, lambda p: p.geocode(query))

    async def reverse(
        self,
        query: ReverseQuery,
        provider: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Optional[Address]:
        """Reverse geocode; same contract as geocode()."""
        self._check_kind(query, ReverseQuery)
        return await self._first_result(query, provider, timeout, lambda p: p.reverse(query))

    async def _first_result(
        self,
        query: Query,
        provider: Optional[str],
        timeout: Optional[float],
        call: Callable[[BaseProvider], Awaitable[Optional[Address]]],
    ) -> Optional[Address]:
        candidates = [self.get_provider(provider)] if provider is not None else list(self.providers)

        for candidate in candidates:
            address = await self._call(candidate, query.describe(), call(candidate), timeout)
            if address is not None and address.has_coordinates:
                logger.debug(f"{query.kind} '{query.describe()}' resolved by {candidate.name}")
                return address

        logger.debug(f"{query.kind} '{query.describe()}': no provider returned a result")
        return None

    # ==========================================================================
    # Fan-out
    # ==========================================================================

    async def suggest(
        self,
        query: SuggestQuery,
        provider: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> ResultSet[str]:
        """
        Suggestions from the named provider, or from every provider
        concatenated in registration order.

        Duplicates across providers are kept; use ResultSet.unique() to drop them.
        """
        self._check_kind(query, SuggestQuery)

        if provider is not None:
            target = self.get_provider(provider)
            suggestions = await self._call(target, query.describe(), target.suggest(query), timeout)
            return ResultSet(suggestions)

        async def run(target: BaseProvider) -> ResultSet[str]:
            return ResultSet(await target.suggest(query))

        return await self._fan_out(run, query.describe(), timeout)

    async def batch(
        self,
        batch: BatchQuery,
        provider: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> ResultSet[Address]:
        """
        Run a batch against the named provider, or against every provider.

        Results are ordered by provider registration, then by batch order.
        Provider-level and query-level failures end up in ResultSet.errors.
        """
        if not isinstance(batch, BatchQuery):
            raise InvalidQueryError(f"Expected BatchQuery, got {type(batch).__name__}")

        if provider is not None:
            target = self.get_provider(provider)
            if not batch:
                return ResultSet()
            return await self._call(target, self._describe_batch(batch), target.batch(batch), timeout)

        if not batch:
            return ResultSet()

        return await self._fan_out(lambda target: target.batch(batch), self._describe_batch(batch), timeout)

    async def _fan_out(
        self,
        run: Callable[[BaseProvider], Awaitable[ResultSet[T]]],
        query_text: str,
        timeout: Optional[float],
    ) -> ResultSet[T]:
        providers = self.providers

        async def isolated(target: BaseProvider) -> ResultSet[T]:
            try:
                return await self._call(target, query_text, run(target), timeout)
            except InvalidServerResponse as e:
                logger.warning(f"Provider {target.name} failed, continuing without it: {e}")
                return ResultSet((), [ProviderFailure.from_error(e)])

        # gather keeps argument order, so results join in registration order
        partials = await asyncio.gather(*(isolated(target) for target in providers))
        result = ResultSet.merge(*partials)

        if result.errors:
            logger.info(
                f"Fan-out '{query_text}': {len(result)} results, "
                f"{len(result.errors)} provider errors"
            )
        return result

    # ==========================================================================
    # Helpers
    # ==========================================================================

    async def _call(
        self,
        provider: BaseProvider,
        query_text: str,
        awaitable: Awaitable[T],
        timeout: Optional[float],
    ) -> T:
        """Await a provider call, converting a timeout into ProviderTimeoutError."""
        limit = timeout if timeout is not None else self.timeout
        try:
            return await asyncio.wait_for(awaitable, timeout=limit)
        except asyncio.TimeoutError:
            raise ProviderTimeoutError.after(provider.name, query_text, limit) from None

    @staticmethod
    def _check_kind(query: Query, expected: type) -> None:
        if not isinstance(query, expected):
            raise InvalidQueryError(
                f"Expected {expected.__name__}, got {type(query).__name__}"
            )

    @staticmethod
    def _describe_batch(batch: BatchQuery) -> str:
        return f"batch of {len(batch)} queries"

    def __repr__(self) -> str:
        return f"<Aggregator providers={self.provider_names}>"
