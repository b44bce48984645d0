"""
HTTP transports used by provider adapters.

A transport issues one request and returns the decoded JSON body. Every
failure (network error, non-2xx status, undecodable body) surfaces as
TransportError; adapters translate that into InvalidServerResponse.

- AiohttpTransport: native asyncio client (one ClientSession per request)
- RequestsTransport: blocking `requests` call run in a worker thread
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Protocol

import aiohttp
import requests

from geocode_aggregator.core import settings
from geocode_aggregator.errors import TransportError

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Capability a provider uses to reach its upstream service."""

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        proxy: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        ...


class AiohttpTransport:
    """
    Transport backed by aiohttp.

    A new ClientSession is opened per request so the transport can be
    shared between event loops (CLI runs, tests) without lifecycle hooks.
    """

    def __init__(self, timeout: Optional[float] = None, connection_limit: int = 5):
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT
        self.connection_limit = connection_limit

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        proxy: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        logger.debug(f"aiohttp {method} {url}")
        client_timeout = aiohttp.ClientTimeout(total=timeout or self.timeout)

        try:
            connector = aiohttp.TCPConnector(limit=self.connection_limit)
            async with aiohttp.ClientSession(connector=connector, timeout=client_timeout) as session:
                async with session.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    headers=headers,
                    proxy=proxy,
                ) as response:
                    if response.status < 200 or response.status >= 300:
                        body = await response.text()
                        raise TransportError(
                            f"HTTP {response.status} from {url}: {body[:200]}",
                            status=response.status,
                        )
                    return await response.json(content_type=None)

        except TransportError:
            raise
        except asyncio.TimeoutError as e:
            raise TransportError(f"Timeout calling {url}") from e
        except aiohttp.ClientError as e:
            raise TransportError(f"Request to {url} failed: {e}") from e
        except ValueError as e:
            raise TransportError(f"Invalid JSON from {url}: {e}") from e


class RequestsTransport:
    """
    Transport backed by `requests`.

    The blocking call runs in a worker thread via asyncio.to_thread so
    concurrent providers are not serialized on the event loop.
    """

    def __init__(self, timeout: Optional[float] = None, session: Optional[requests.Session] = None):
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT
        self.session = session or requests.Session()

    def _send(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]],
        json: Optional[Dict[str, Any]],
        headers: Optional[Dict[str, str]],
        proxy: Optional[str],
        timeout: float,
    ) -> Any:
        logger.debug(f"requests {method} {url}")
        proxies = {"http": proxy, "https": proxy} if proxy else None

        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=json,
                headers=headers,
                proxies=proxies,
                timeout=timeout,
            )
        except requests.Timeout as e:
            raise TransportError(f"Timeout calling {url}") from e
        except requests.RequestException as e:
            raise TransportError(f"Request to {url} failed: {e}") from e

        if not response.ok:
            raise TransportError(
                f"HTTP {response.status_code} from {url}: {response.text[:200]}",
                status=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"Invalid JSON from {url}: {e}") from e

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        proxy: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        return await asyncio.to_thread(
            self._send, method, url, params, json, headers, proxy, timeout or self.timeout
        )
