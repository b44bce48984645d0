"""
Result containers returned by fan-out operations.

A ResultSet behaves like a read-only list of results and additionally
carries the provider failures that were isolated while producing it.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Generic, Iterable, Iterator, List, Tuple, TypeVar, Union, overload

T = TypeVar("T")


@dataclass(frozen=True)
class ProviderFailure:
    """One isolated provider error, kept for observability."""

    provider: str
    query_text: str
    message: str

    @classmethod
    def from_error(cls, error) -> "ProviderFailure":
        return cls(provider=error.provider, query_text=error.query, message=error.message)


class ResultSet(Sequence, Generic[T]):
    """Ordered results plus the failures collected alongside them."""

    __slots__ = ("_items", "_errors")

    def __init__(self, items: Iterable[T] = (), errors: Iterable[ProviderFailure] = ()):
        self._items: Tuple[T, ...] = tuple(items)
        self._errors: Tuple[ProviderFailure, ...] = tuple(errors)

    @classmethod
    def merge(cls, *result_sets: "ResultSet[T]") -> "ResultSet[T]":
        """Concatenate results and errors in argument order."""
        items: List[T] = []
        errors: List[ProviderFailure] = []
        for result_set in result_sets:
            items.extend(result_set)
            errors.extend(result_set.errors)
        return cls(items, errors)

    @property
    def errors(self) -> Tuple[ProviderFailure, ...]:
        return self._errors

    @property
    def ok(self) -> bool:
        return not self._errors

    def unique(self) -> "ResultSet[T]":
        """Drop repeated results, keeping the first occurrence."""
        seen = []
        for item in self._items:
            if item not in seen:
                seen.append(item)
        return ResultSet(seen, self._errors)

    @overload
    def __getitem__(self, index: int) -> T: ...

    @overload
    def __getitem__(self, index: slice) -> Tuple[T, ...]: ...

    def __getitem__(self, index: Union[int, slice]):
        return self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __eq__(self, other) -> bool:
        if isinstance(other, ResultSet):
            return self._items == other._items and self._errors == other._errors
        if isinstance(other, (list, tuple)):
            return list(self._items) == list(other)
        return NotImplemented

    __hash__ = None

    def __repr__(self) -> str:
        return f"ResultSet({list(self._items)!r}, errors={list(self._errors)!r})"
