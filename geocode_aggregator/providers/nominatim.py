"""
Nominatim (OpenStreetMap) provider.

Free geocoding using OpenStreetMap data.
https://nominatim.org/release-docs/latest/api/Overview/
"""

import logging
from typing import Any, ClassVar, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field

from geocode_aggregator.core import settings
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
from geocode_aggregator.providers.transport import RequestsTransport, Transport

logger = logging.getLogger(__name__)

NOMINATIM_URL = "https://nominatim.openstreetmap.org"

# Zoom level Nominatim uses for city-sized results on /reverse
CITY_ZOOM = 10


class NominatimParameters(BaseModel):
    """Constructor parameters accepted from a provider descriptor."""

    model_config = ConfigDict(extra="forbid")

    base_url: str = NOMINATIM_URL
    user_agent: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = None
    accept_language: str = "en"
    timeout: Optional[float] = Field(None, gt=0)


class NominatimProvider(BaseProvider):
    """
    Nominatim (OpenStreetMap) provider.

    Pros:
    - Free
    - Good global coverage

    Cons:
    - Strict rate limiting (1 request/second on the public instance)
    - Requires a user agent

    Usage:
        provider = NominatimProvider(user_agent="MyApp/1.0")
        address = await provider.geocode(GeocodeQuery("Red Square, Moscow"))
    """

    parameters_model: ClassVar[Type[BaseModel]] = NominatimParameters

    # The public instance tolerates very little parallelism
    batch_concurrency = 1

    def __init__(
        self,
        base_url: str = NOMINATIM_URL,
        user_agent: Optional[str] = None,
        email: Optional[str] = None,
        accept_language: str = "en",
        timeout: Optional[float] = None,
        transport: Optional[Transport] = None,
    ):
        """
        Initialize Nominatim provider.

        Args:
            base_url: Nominatim instance (default: public OSM server)
            user_agent: User agent string (required by Nominatim TOS)
            email: Contact address sent with each request
            accept_language: Preferred language of display names
            timeout: HTTP timeout in seconds (uses settings if not provided)
            transport: Transport override, mainly for tests
        """
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent or settings.NOMINATIM_USER_AGENT
        self.email = email
        self.accept_language = accept_language
        self.timeout = timeout
        self.transport = transport or RequestsTransport(timeout=timeout)

    @property
    def name(self) -> str:
        return "nominatim"

    async def geocode(self, query: GeocodeQuery) -> Optional[Address]:
        data = await self._execute("search", query)
        return self.first_with_coordinates(data)

    async def reverse(self, query: ReverseQuery) -> Optional[Address]:
        data = await self._execute("reverse", query)
        return self.first_with_coordinates(data)

    async def suggest(self, query: SuggestQuery) -> List[str]:
        data = await self._execute("search", query)
        return [address.formatted_address for address in data if address.formatted_address]

    def build_params(self, query: Query) -> Dict[str, Any]:
        """Query-string parameters for a search or reverse request."""
        params: Dict[str, Any] = {"format": "jsonv2"}

        if isinstance(query, ReverseQuery):
            params["lat"] = query.latitude
            params["lon"] = query.longitude
            if query.group_by == QueryGroup.CITY:
                params["zoom"] = CITY_ZOOM
        else:
            params["q"] = query.text
            params["limit"] = query.limit
            if query.group_by == QueryGroup.CITY:
                params["featureType"] = "city"

        if self.email:
            params["email"] = self.email

        return params

    async def _execute(self, endpoint: str, query: Query) -> List[Address]:
        headers = {
            "User-Agent": self.user_agent,
            "Accept-Language": self.accept_language,
        }

        try:
            data = await self.transport.request(
                "GET",
                f"{self.base_url}/{endpoint}",
                params=self.build_params(query),
                headers=headers,
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
        """
        Turn a Nominatim payload into addresses.

        /search answers with a list, /reverse with a single object or
        {"error": "Unable to geocode"} when nothing is there.
        """
        if not data:
            return []

        if isinstance(data, dict):
            if "error" in data:
                logger.debug(f"{self.name}: {data['error']}")
                return []
            data = [data]

        return [
            AddressBuilder(self.name)
            .set_coordinates(item.get("lat"), item.get("lon"))
            .set_formatted_address(item.get("display_name"))
            .set_raw(item)
            .build()
            for item in data
        ]
