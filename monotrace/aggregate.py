"""Per-identity running totals (allocation bytes, method ticks) and ranking."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Iterator, TypeVar


class SortField(str, Enum):
    AVERAGE = "avg"
    TOTAL = "total"
    COUNT = "count"


class SortOrder(str, Enum):
    ASCENDING = "asc"
    DESCENDING = "desc"


def truncating_div(numerator: int, denominator: int) -> int:
    """Integer division rounding toward zero; 0 when denominator is 0."""
    if denominator == 0:
        return 0
    quotient = abs(numerator) // abs(denominator)
    if (numerator < 0) != (denominator < 0):
        return -quotient
    return quotient


@dataclass
class AggregateRecord:
    identity: int
    total: int = 0
    count: int = 0

    @property
    def average(self) -> int:
        return truncating_div(self.total, self.count)

    def to_dict(self) -> dict:
        return {
            "identity": self.identity,
            "total": self.total,
            "count": self.count,
            "average": self.average
        }


T = TypeVar("T")


def rank_records(records: Iterable[T], key: Callable[[T], int], order: SortOrder) -> list[T]:
    """
    Stable sort of records by key.

    Descending is the reverse of the ascending comparator; records with equal
    keys keep their input order in both directions.
    """
    return sorted(records, key=key, reverse=order == SortOrder.DESCENDING)


_FIELD_KEYS: dict[SortField, Callable[[AggregateRecord], int]] = {
    SortField.AVERAGE: lambda record: record.average,
    SortField.TOTAL: lambda record: record.total,
    SortField.COUNT: lambda record: record.count,
}


class AggregateAccumulator:
    """Mapping from identity to a running (total, count) pair."""

    def __init__(self):
        self._records: dict[int, AggregateRecord] = {}

    def record(self, identity: int, metric: int) -> AggregateRecord:
        """Add one sample of metric for identity."""
        entry = self._records.get(identity)
        if entry is None:
            entry = AggregateRecord(identity)
            self._records[identity] = entry
        entry.total += metric
        entry.count += 1
        return entry

    def subtract(self, other: AggregateRecord) -> AggregateRecord:
        """Subtract another record's total and count, starting from zero for a new identity."""
        entry = self._records.get(other.identity)
        if entry is None:
            entry = AggregateRecord(other.identity)
            self._records[other.identity] = entry
        entry.total -= other.total
        entry.count -= other.count
        return entry

    def get(self, identity: int) -> AggregateRecord | None:
        return self._records.get(identity)

    def copy(self) -> "AggregateAccumulator":
        clone = AggregateAccumulator()
        for identity, entry in self._records.items():
            clone._records[identity] = AggregateRecord(identity, entry.total, entry.count)
        return clone

    def rank(self, field: SortField, order: SortOrder) -> list[AggregateRecord]:
        return rank_records(self._records.values(), _FIELD_KEYS[field], order)

    def __contains__(self, identity: object) -> bool:
        return identity in self._records

    def __iter__(self) -> Iterator[AggregateRecord]:
        return iter(self._records.values())

    def __len__(self) -> int:
        return len(self._records)
