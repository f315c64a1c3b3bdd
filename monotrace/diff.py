"""Signed deltas between the allocation aggregates of two trace files."""

from __future__ import annotations

from dataclasses import dataclass, field

from monotrace.aggregate import AggregateAccumulator, SortField, SortOrder, rank_records
from monotrace.directory import IdentityDirectory, identity_token
from monotrace.errors import InputValidationError, SnapshotMismatchError


@dataclass
class TraceSnapshot:
    """Aggregates and directory produced by one completed trace file."""

    path: str
    directory: IdentityDirectory = field(default_factory=IdentityDirectory)
    aggregates: AggregateAccumulator = field(default_factory=AggregateAccumulator)


@dataclass(frozen=True)
class DiffRecord:
    identity: int
    delta_total: int
    delta_count: int

    @property
    def is_zero(self) -> bool:
        return self.delta_total == 0 and self.delta_count == 0


@dataclass
class SnapshotDiff:
    records: list[DiffRecord]
    directory: IdentityDirectory

    def visible(self) -> list[DiffRecord]:
        """Records with at least one non-zero delta."""
        return [record for record in self.records if not record.is_zero]

    def rank(self, sort_field: SortField, order: SortOrder) -> list[DiffRecord]:
        if sort_field == SortField.TOTAL:
            key = lambda record: record.delta_total
        elif sort_field == SortField.COUNT:
            key = lambda record: record.delta_count
        else:
            raise InputValidationError(f"Diff cannot be sorted by {sort_field.value}, use total or count.")
        return rank_records(self.visible(), key, order)


def merge_directories(first: IdentityDirectory, second: IdentityDirectory) -> IdentityDirectory:
    """
    Layer second's entries over a copy of first.

    Raises:
        SnapshotMismatchError: If an identity known to both describes different entities
    """
    merged = first.copy()
    for identity, descriptor in second.items():
        existing = merged.resolve(identity)
        if existing is None:
            merged.define(identity, descriptor)
        elif not existing.same_entity(descriptor):
            raise SnapshotMismatchError(
                f"Identity {identity_token(identity)} is '{existing.full_name()}' in the first file "
                f"and '{descriptor.full_name()}' in the second, files not captured in same runtime instance."
            )
    return merged


def diff_snapshots(first: TraceSnapshot, second: TraceSnapshot) -> SnapshotDiff:
    """
    Compute second - first for every identity observed in either snapshot.

    Identities only in first appear with negated values (disappeared), identities
    only in second keep their values (appeared).
    """
    directory = merge_directories(first.directory, second.directory)

    deltas = second.aggregates.copy()
    for record in first.aggregates:
        deltas.subtract(record)

    records = [DiffRecord(entry.identity, entry.total, entry.count) for entry in deltas]
    return SnapshotDiff(records, directory)
