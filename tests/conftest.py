"""Shared fakes for provider and transport tests. No test touches the network."""

import asyncio
from typing import Any, Callable, Dict, List, Optional

import pytest

from geocode_aggregator import facade
from geocode_aggregator.errors import InvalidServerResponse, TransportError
from geocode_aggregator.models import Address, GeocodeQuery, ReverseQuery, SuggestQuery
from geocode_aggregator.providers.base import BaseProvider


def make_address(provider: str, lat: Optional[float] = 55.7, lon: Optional[float] = 37.6,
                 text: str = "Moscow") -> Address:
    return Address(provided_by=provider, latitude=lat, longitude=lon, formatted_address=text)


class FakeProvider(BaseProvider):
    """
    In-memory provider.

    `results` maps query text (Query.describe()) to the Address returned;
    `default` is returned for anything else. Queries listed in `fail_on`
    raise InvalidServerResponse, `fail_all` makes every call fail.
    """

    def __init__(
        self,
        name: str,
        default: Optional[Address] = None,
        results: Optional[Dict[str, Optional[Address]]] = None,
        suggestions: Optional[List[str]] = None,
        fail_on: tuple = (),
        fail_all: bool = False,
        delay: float = 0.0,
        tracker: Optional[Dict[str, int]] = None,
    ):
        self._name = name
        self.default = default
        self.results = results or {}
        self.suggestions = list(suggestions or [])
        self.fail_on = set(fail_on)
        self.fail_all = fail_all
        self.delay = delay
        self.tracker = tracker
        self.calls: List[tuple] = []
        self.cancelled = False

    @property
    def name(self) -> str:
        return self._name

    async def _work(self, kind: str, text: str) -> None:
        self.calls.append((kind, text))
        if self.tracker is not None:
            self.tracker["active"] += 1
            self.tracker["peak"] = max(self.tracker["peak"], self.tracker["active"])
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        finally:
            if self.tracker is not None:
                self.tracker["active"] -= 1

        if self.fail_all or text in self.fail_on:
            raise InvalidServerResponse.create(self.name, text)

    async def geocode(self, query: GeocodeQuery) -> Optional[Address]:
        await self._work("geocode", query.describe())
        return self.results.get(query.describe(), self.default)

    async def reverse(self, query: ReverseQuery) -> Optional[Address]:
        await self._work("reverse", query.describe())
        return self.results.get(query.describe(), self.default)

    async def suggest(self, query: SuggestQuery) -> List[str]:
        await self._work("suggest", query.describe())
        return list(self.suggestions)


class FakeTransport:
    """
    Records requests and answers with a canned payload.

    `respond` may be a payload or a callable(method, url, params, json) that
    returns a payload or raises.
    """

    def __init__(self, respond: Any = None):
        self.respond = respond
        self.requests: List[Dict[str, Any]] = []

    @property
    def last(self) -> Dict[str, Any]:
        return self.requests[-1]

    async def request(self, method, url, *, params=None, json=None, headers=None,
                      proxy=None, timeout=None):
        self.requests.append({
            "method": method,
            "url": url,
            "params": params,
            "json": json,
            "headers": headers,
            "proxy": proxy,
            "timeout": timeout,
        })
        if isinstance(self.respond, Exception):
            raise self.respond
        if callable(self.respond):
            return self.respond(method, url, params, json)
        return self.respond


def failing_for(text: str, payload: Any) -> Callable:
    """Transport responder that fails for one query text and answers `payload` otherwise."""

    def respond(method, url, params, json):
        sent = (json or {}).get("query") or (params or {}).get("q")
        if sent == text:
            raise TransportError("connection reset by peer")
        return payload

    return respond


def dadata_payload(*items) -> Dict[str, Any]:
    """Build a DaData response from (value, lat, lon) tuples."""
    return {
        "suggestions": [
            {
                "value": value,
                "unrestricted_value": f"101000, {value}",
                "data": {"geo_lat": lat, "geo_lon": lon},
            }
            for value, lat, lon in items
        ]
    }


@pytest.fixture(autouse=True)
def reset_shared_aggregator():
    facade.reset_aggregator()
    yield
    facade.reset_aggregator()
