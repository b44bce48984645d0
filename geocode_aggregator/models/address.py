"""
Normalized address resource produced by every provider.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Address:
    """Standard result from any geocoding provider."""

    provided_by: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    formatted_address: str = ""
    raw: Optional[Dict[str, Any]] = field(default=None, compare=False, repr=False)

    @property
    def has_coordinates(self) -> bool:
        """A missing latitude means the geocode failed, whatever else is set."""
        return self.latitude is not None

    @property
    def as_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "provided_by": self.provided_by,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "formatted_address": self.formatted_address,
        }


def _to_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    return float(value)


class AddressBuilder:
    """
    Mutable builder used by provider adapters while parsing a payload item.

    Setters return the builder so calls can be chained. Coordinates given
    as numeric strings (DaData returns "55.7558") are coerced to float;
    None and empty strings are kept as "no coordinate".

    Usage:
        address = (
            AddressBuilder("DaData.ru")
            .set_coordinates("55.7558", "37.6173")
            .set_formatted_address("Moscow, Red Square")
            .build()
        )
    """

    def __init__(self, provided_by: str):
        self._provided_by = provided_by
        self._latitude: Optional[float] = None
        self._longitude: Optional[float] = None
        self._formatted_address = ""
        self._raw: Optional[Dict[str, Any]] = None

    def set_provided_by(self, provided_by: str) -> "AddressBuilder":
        self._provided_by = provided_by
        return self

    def set_latitude(self, latitude: Any) -> "AddressBuilder":
        self._latitude = _to_float(latitude)
        return self

    def set_longitude(self, longitude: Any) -> "AddressBuilder":
        self._longitude = _to_float(longitude)
        return self

    def set_coordinates(self, latitude: Any, longitude: Any) -> "AddressBuilder":
        return self.set_latitude(latitude).set_longitude(longitude)

    def set_formatted_address(self, formatted_address: Optional[str]) -> "AddressBuilder":
        self._formatted_address = formatted_address or ""
        return self

    def set_raw(self, raw: Optional[Dict[str, Any]]) -> "AddressBuilder":
        self._raw = raw
        return self

    def build(self) -> Address:
        return Address(
            provided_by=self._provided_by,
            latitude=self._latitude,
            longitude=self._longitude,
            formatted_address=self._formatted_address,
            raw=self._raw,
        )
