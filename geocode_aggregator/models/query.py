"""
Query value objects.

A query describes what is being asked: free-form text to geocode or
autocomplete, or a coordinate pair to reverse-geocode. Queries are
immutable; use with_limit() / with_group_by() to derive a modified copy.

Usage:
    from geocode_aggregator.models import GeocodeQuery, ReverseQuery, BatchQuery, QueryGroup

    query = GeocodeQuery("Moscow, Tverskaya 1", group_by=QueryGroup.CITY, limit=5)
    reverse = ReverseQuery.from_coordinates(55.7558, 37.6173)
    batch = BatchQuery([query, reverse])
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable, Iterator, Optional, Tuple, Union

from geocode_aggregator.core.utils.geo import is_valid_latitude, is_valid_longitude
from geocode_aggregator.errors import InvalidQueryError

DEFAULT_LIMIT = 10


class QueryGroup(str, Enum):
    """Granularity a provider should narrow its results to."""
    NONE = "none"
    ADDRESS = "address"
    CITY = "city"

    @classmethod
    def _missing_(cls, value):
        """Accept case-insensitive names and values ("City", "GROUP_BY_CITY")."""
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized.startswith("group_by_"):
                normalized = normalized[len("group_by_"):]
            for member in cls:
                if member.value == normalized:
                    return member
        return None


@dataclass(frozen=True)
class Query:
    """Abstract base for every query kind."""

    text: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    group_by: QueryGroup = QueryGroup.NONE
    limit: int = DEFAULT_LIMIT

    def __post_init__(self) -> None:
        if type(self) is Query:
            raise TypeError("Query is abstract; use GeocodeQuery, ReverseQuery or SuggestQuery")

        try:
            object.__setattr__(self, "group_by", QueryGroup(self.group_by))
        except ValueError as e:
            raise InvalidQueryError(f"Unknown group_by value: {self.group_by!r}") from e

        if isinstance(self.limit, bool) or not isinstance(self.limit, int):
            raise InvalidQueryError(f"limit must be an integer, got {self.limit!r}")
        if self.limit < 0:
            raise InvalidQueryError(f"limit must be >= 0, got {self.limit}")

        self._validate()

    def _validate(self) -> None:
        raise NotImplementedError

    def _require_text(self) -> None:
        if not isinstance(self.text, str) or not self.text.strip():
            raise InvalidQueryError(
                f"{type(self).__name__} requires non-empty text"
            )

    @property
    def kind(self) -> str:
        """Short lowercase name of the query kind ("geocode", "reverse", "suggest")."""
        return type(self).__name__[:-len("Query")].lower()

    def describe(self) -> str:
        """Text identifying this query in logs and error messages."""
        return self.text or ""

    def with_limit(self, limit: int) -> "Query":
        return replace(self, limit=limit)

    def with_group_by(self, group_by: Union[QueryGroup, str]) -> "Query":
        return replace(self, group_by=group_by)


@dataclass(frozen=True)
class GeocodeQuery(Query):
    """Forward geocode: free-form address text to coordinates."""

    def _validate(self) -> None:
        self._require_text()


@dataclass(frozen=True)
class SuggestQuery(Query):
    """Autocomplete: partial address text to candidate formatted addresses."""

    def _validate(self) -> None:
        self._require_text()


@dataclass(frozen=True)
class ReverseQuery(Query):
    """Reverse geocode: coordinates to a formatted address."""

    @classmethod
    def from_coordinates(cls, latitude: float, longitude: float, **kwargs) -> "ReverseQuery":
        return cls(latitude=latitude, longitude=longitude, **kwargs)

    def _validate(self) -> None:
        if self.latitude is None or self.longitude is None:
            raise InvalidQueryError("ReverseQuery requires latitude and longitude")

        try:
            lat = float(self.latitude)
            lng = float(self.longitude)
        except (TypeError, ValueError) as e:
            raise InvalidQueryError(
                f"Coordinates must be numeric: {self.latitude!r}, {self.longitude!r}"
            ) from e

        if not is_valid_latitude(lat):
            raise InvalidQueryError(f"Latitude out of range: {lat}")
        if not is_valid_longitude(lng):
            raise InvalidQueryError(f"Longitude out of range: {lng}")

        object.__setattr__(self, "latitude", lat)
        object.__setattr__(self, "longitude", lng)

    def describe(self) -> str:
        return self.text or f"{self.latitude},{self.longitude}"


@dataclass(frozen=True)
class BatchQuery:
    """
    Ordered, possibly heterogeneous group of queries.

    Insertion order is preserved. An empty batch is valid.
    """

    queries: Tuple[Query, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        queries = tuple(self.queries)
        for position, query in enumerate(queries):
            if not isinstance(query, Query):
                raise InvalidQueryError(
                    f"Batch item #{position} is not a query: {query!r}"
                )
        object.__setattr__(self, "queries", queries)

    @classmethod
    def of(cls, *queries: Query) -> "BatchQuery":
        return cls(queries)

    def add(self, query: Query) -> "BatchQuery":
        """Return a new batch with `query` appended."""
        return BatchQuery(self.queries + (query,))

    def extend(self, queries: Iterable[Query]) -> "BatchQuery":
        return BatchQuery(self.queries + tuple(queries))

    def __iter__(self) -> Iterator[Query]:
        return iter(self.queries)

    def __len__(self) -> int:
        return len(self.queries)
