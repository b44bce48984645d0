"""
Exception hierarchy for the geocode aggregator.

Provider adapters convert every transport or parsing failure into
InvalidServerResponse before it reaches the Aggregator, so callers only
ever see the types defined here.
"""

from typing import Optional


class GeocodeError(Exception):
    """Base class for all aggregator errors."""

    def __init__(self, message: str, provider: str = "", query: str = ""):
        self.message = message
        self.provider = provider
        self.query = query
        super().__init__(f"[{provider}] {message}" if provider else message)


class ConfigurationError(GeocodeError):
    """Provider registration failed (unknown identifier, bad parameters)."""

    def __init__(self, message: str, entry: Optional[int] = None, identifier: str = ""):
        self.entry = entry
        self.identifier = identifier
        if entry is not None:
            message = f"Provider entry #{entry} ({identifier or '?'}): {message}"
        super().__init__(message)


class UnknownProviderError(GeocodeError):
    """A pinned call named a provider that is not registered."""

    def __init__(self, provider: str, available: Optional[list] = None):
        self.available = list(available or [])
        super().__init__(
            f"Unknown provider: {provider}. Registered: {self.available}",
            provider=provider,
        )


class InvalidServerResponse(GeocodeError):
    """A provider could not be reached or returned an unusable payload."""

    @classmethod
    def create(cls, provider: str, query: str, reason: str = "") -> "InvalidServerResponse":
        message = f'Provider "{provider}" could not geocode address: "{query}".'
        if reason:
            message = f"{message} {reason}"
        return cls(message, provider=provider, query=query)


class ProviderTimeoutError(InvalidServerResponse):
    """A provider did not answer within the aggregator timeout."""

    @classmethod
    def after(cls, provider: str, query: str, timeout: float) -> "ProviderTimeoutError":
        return cls(
            f'Provider "{provider}" timed out after {timeout:g}s on "{query}".',
            provider=provider,
            query=query,
        )


class InvalidQueryError(GeocodeError, ValueError):
    """A query was constructed with values that break its invariants."""


class TransportError(Exception):
    """
    Raised by transports on network errors, non-2xx statuses and
    undecodable bodies. Never escapes a provider adapter.
    """

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)
