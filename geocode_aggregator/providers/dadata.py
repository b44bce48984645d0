"""
DaData.ru provider.

Russian address suggestions, geocoding and geolocation API.
https://dadata.ru/api/suggest/address/
"""

import logging
from typing import Any, ClassVar, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field

from geocode_aggregator.errors import InvalidServerResponse, TransportError
from geocode_aggregator.models import (
    Address,
    AddressBuilder,
    GeocodeQuery,
    Query,
    QueryGroup,
    ReverseQuery,
    SuggestQuery,
)
from geocode_aggregator.providers.base import BaseProvider
from geocode_aggregator.providers.transport import AiohttpTransport, Transport

logger = logging.getLogger(__name__)

DADATA_BASE_URL = "https://suggestions.dadata.ru/suggestions/api/4_1/rs"
SUGGEST_URL = f"{DADATA_BASE_URL}/suggest"
GEOCODE_URL = f"{DADATA_BASE_URL}/suggest"
REVERSE_URL = f"{DADATA_BASE_URL}/geolocate"


class DaDataParameters(BaseModel):
    """Constructor parameters accepted from a provider descriptor."""

    model_config = ConfigDict(extra="forbid")

    token: str = Field(..., min_length=1, description="DaData API token")
    proxy: Optional[str] = Field(None, description="Proxy host, optionally with scheme")
    proxy_port: int = Field(80, ge=1, le=65535)
    timeout: Optional[float] = Field(None, gt=0, description="HTTP timeout in seconds")


class DaDataProvider(BaseProvider):
    """
    DaData.ru provider.

    Every operation goes through the "suggest address" family of endpoints;
    geolocate is used for reverse lookups. City grouping narrows results
    with from_bound/to_bound.

    Usage:
        provider = DaDataProvider(token="...")
        address = await provider.geocode(GeocodeQuery("Москва, Тверская 1"))
    """

    parameters_model: ClassVar[Type[BaseModel]] = DaDataParameters

    def __init__(
        self,
        token: str,
        proxy: Optional[str] = None,
        proxy_port: int = 80,
        timeout: Optional[float] = None,
        transport: Optional[Transport] = None,
    ):
        """
        Initialize DaData provider.

        Args:
            token: DaData API token (sent as "Authorization: Token ...")
            proxy: Optional proxy host
            proxy_port: Proxy port (default: 80)
            timeout: HTTP timeout in seconds (uses settings if not provided)
            transport: Transport override, mainly for tests
        """
        self.token = token
        self.proxy = proxy
        self.proxy_port = proxy_port
        self.timeout = timeout
        self.transport = transport or AiohttpTransport(timeout=timeout)

    @property
    def name(self) -> str:
        return "DaData.ru"

    @property
    def proxy_url(self) -> Optional[str]:
        if not self.proxy:
            return None
        proxy = self.proxy if "://" in self.proxy else f"http://{self.proxy}"
        return f"{proxy}:{self.proxy_port}"

    async def geocode(self, query: GeocodeQuery) -> Optional[Address]:
        data = await self._execute(self.build_url(query, GEOCODE_URL), query)
        return self.first_with_coordinates(data)

    async def reverse(self, query: ReverseQuery) -> Optional[Address]:
        data = await self._execute(self.build_url(query, REVERSE_URL), query)
        return self.first_with_coordinates(data)

    async def suggest(self, query: SuggestQuery) -> List[str]:
        data = await self._execute(self.build_url(query, SUGGEST_URL), query)
        return [address.formatted_address for address in data]

    def build_url(self, query: Query, base_url: str) -> str:
        # DaData only exposes the "address" resource for these endpoints;
        # grouping is expressed through bounds in the body.
        return f"{base_url}/address"

    def build_request(self, query: Query) -> Dict[str, Any]:
        """Build headers and JSON body for a query."""
        body: Dict[str, Any] = {"count": query.limit}

        if isinstance(query, ReverseQuery):
            body["lat"] = query.latitude
            body["lon"] = query.longitude
        else:
            body["query"] = query.text

        if query.group_by == QueryGroup.CITY:
            body["from_bound"] = {"value": "city"}
            body["to_bound"] = {"value": "city"}

        return {
            "headers": {
                "Authorization": f"Token {self.token}",
                "Accept": "application/json",
                "Content-Type": "application/json",
            },
            "json": body,
            "proxy": self.proxy_url,
        }

    async def _execute(self, url: str, query: Query) -> List[Address]:
        request = self.build_request(query)

        try:
            data = await self.transport.request(
                "POST",
                url,
                json=request["json"],
                headers=request["headers"],
                proxy=request["proxy"],
                timeout=self.timeout,
            )
        except TransportError as e:
            raise InvalidServerResponse.create(self.name, query.describe(), str(e)) from e

        try:
            return self.parse_response(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise InvalidServerResponse.create(
                self.name, query.describe(), f"Malformed payload: {e}"
            ) from e

    def parse_response(self, data: Any) -> List[Address]:
        """Turn a DaData payload into addresses; no suggestions means no results."""
        suggestions = (data or {}).get("suggestions") or []
        if not suggestions:
            logger.debug(f"{self.name}: no suggestions")
            return []

        result = []
        for item in suggestions:
            details = item.get("data") or {}
            builder = (
                AddressBuilder(self.name)
                .set_coordinates(details.get("geo_lat"), details.get("geo_lon"))
                .set_formatted_address(item.get("unrestricted_value") or item.get("value"))
                .set_raw(item)
            )
            result.append(builder.build())

        return result
