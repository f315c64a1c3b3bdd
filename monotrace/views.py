"""Read-only report views over a completed analysis."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from monotrace.aggregate import AggregateAccumulator, rank_records, truncating_div
from monotrace.analyzer import MethodLoad
from monotrace.callstack import CapturedFrame, Frame, Interval
from monotrace.config import TICKS_PER_MILLISECOND, ReportConfig
from monotrace.diff import SnapshotDiff
from monotrace.directory import IdentityDirectory, MethodDescriptor, NameResolver
from monotrace.errors import InputValidationError
from monotrace.events import Checkpoint

RUNTIME_INIT = "RuntimeInit"
RUNTIME_SUSPEND = "RuntimeSuspend"
RUNTIME_RESUME = "RuntimeResume"


@dataclass(frozen=True)
class IntervalRow:
    identity: int
    name: str
    duration: int


@dataclass
class ThreadReport:
    thread_id: int
    rows: list = field(default_factory=list)


@dataclass(frozen=True)
class AggregateRow:
    identity: int
    name: str
    average: int
    total: int
    count: int

    def to_dict(self) -> dict:
        return {
            "identity": self.identity,
            "name": self.name,
            "average": self.average,
            "total": self.total,
            "count": self.count
        }


@dataclass(frozen=True)
class DiffRow:
    identity: int
    name: str
    delta_total: int
    delta_count: int

    def to_dict(self) -> dict:
        return {
            "identity": self.identity,
            "name": self.name,
            "delta_total": self.delta_total,
            "delta_count": self.delta_count
        }


@dataclass(frozen=True)
class StackRow:
    identity: int
    name: str
    duration: int | None = None


@dataclass(frozen=True)
class IdentityRow:
    identity: int
    name: str


@dataclass(frozen=True)
class StartupRow:
    identity: int
    name: str
    latency_ms: int


@dataclass
class StartupReport:
    method_filter: str
    rows: list[StartupRow]
    runtime_init: int
    suspended_ticks: int


def resolver_for(directory: IdentityDirectory, config: ReportConfig) -> NameResolver:
    return NameResolver(directory, config.name_width, config.show_signature)


def top_per_thread(
    intervals: dict[int, list[Interval]],
    directory: IdentityDirectory,
    config: ReportConfig
) -> list[ThreadReport]:
    """
    Longest (or shortest) completed calls per thread.

    Intervals are sorted by duration in config.order, filtered, and capped at
    config.max_entries. Threads without any remaining row are omitted.
    """
    resolver = resolver_for(directory, config)
    reports = []
    for thread_id, items in intervals.items():
        report = ThreadReport(thread_id)
        for interval in rank_records(items, lambda item: item.duration, config.order):
            if len(report.rows) >= config.max_entries:
                break
            if not config.includes(interval.identity, resolver.full_name(interval.identity)):
                continue
            report.rows.append(
                IntervalRow(interval.identity, resolver.display_name(interval.identity), interval.duration)
            )
        if report.rows:
            reports.append(report)
    return reports


def ranked_aggregate(
    accumulator: AggregateAccumulator,
    directory: IdentityDirectory,
    config: ReportConfig
) -> list[AggregateRow]:
    """Aggregate records ranked by config.sort_field, filtered and capped."""
    resolver = resolver_for(directory, config)
    rows = []
    for record in accumulator.rank(config.sort_field, config.order):
        if len(rows) >= config.max_entries:
            break
        if not config.includes(record.identity, resolver.full_name(record.identity)):
            continue
        rows.append(
            AggregateRow(
                record.identity,
                resolver.display_name(record.identity),
                record.average,
                record.total,
                record.count
            )
        )
    return rows


def ranked_diff(diff: SnapshotDiff, config: ReportConfig) -> list[DiffRow]:
    """Non-zero diff records ranked by total or count, filtered and capped."""
    resolver = resolver_for(diff.directory, config)
    rows = []
    for record in diff.rank(config.sort_field, config.order):
        if len(rows) >= config.max_entries:
            break
        if not config.includes(record.identity, resolver.full_name(record.identity)):
            continue
        rows.append(
            DiffRow(record.identity, resolver.display_name(record.identity), record.delta_total, record.delta_count)
        )
    return rows


def _stack_rows(stack: Iterable[CapturedFrame], resolver: NameResolver) -> list[StackRow]:
    return [StackRow(frame.identity, resolver.display_name(frame.identity), frame.duration) for frame in stack]


def caller_stacks(
    captured: list[tuple[CapturedFrame, ...]],
    target: int,
    directory: IdentityDirectory,
    config: ReportConfig
) -> list[list[StackRow]]:
    """Stacks that entered target, root first, ending at target."""
    resolver = resolver_for(directory, config)
    return [
        _stack_rows(stack, resolver)
        for stack in captured
        if stack and stack[-1].identity == target
    ]


def callee_stacks(
    captured: list[tuple[CapturedFrame, ...]],
    target: int,
    directory: IdentityDirectory,
    config: ReportConfig
) -> list[list[StackRow]]:
    """Stacks of calls made beneath target, root first, ending at the callee."""
    resolver = resolver_for(directory, config)
    return [
        _stack_rows(stack, resolver)
        for stack in captured
        if any(frame.identity == target for frame in stack[:-1])
    ]


def incomplete_stacks(
    stacks: dict[int, tuple[Frame, ...]],
    directory: IdentityDirectory,
    config: ReportConfig
) -> list[ThreadReport]:
    """Frames left open when the stream ended, innermost first, per thread."""
    resolver = resolver_for(directory, config)
    reports = []
    for thread_id, frames in stacks.items():
        report = ThreadReport(thread_id)
        for frame in reversed(frames):
            if not config.includes(frame.identity, resolver.full_name(frame.identity)):
                continue
            report.rows.append(StackRow(frame.identity, resolver.display_name(frame.identity)))
        if report.rows:
            reports.append(report)
    return reports


def find_identities(directory: IdentityDirectory, config: ReportConfig) -> list[IdentityRow]:
    """Every directory entry whose full name passes the filter, in definition order."""
    resolver = resolver_for(directory, config)
    return [
        IdentityRow(identity, resolver.display_name(identity))
        for identity, _ in directory.items()
        if config.includes(identity, resolver.full_name(identity))
    ]


def _last_checkpoint(checkpoints: list[Checkpoint], marker: str) -> Checkpoint | None:
    found = None
    for checkpoint in checkpoints:
        if marker in checkpoint.name:
            found = checkpoint
    return found


def startup_latency(
    method_loads: list[MethodLoad],
    checkpoints: list[Checkpoint],
    directory: IdentityDirectory,
    method_filter: str = "",
    name_width: int = 70
) -> StartupReport:
    """
    Time from runtime init to the first load of selected methods, excluding suspension.

    Args:
        method_loads: MethodLoad entries in load order
        checkpoints: Checkpoints in stream order
        directory: Method directory
        method_filter: Empty selects the first loaded method, '*' all, else a substring
        name_width: Display label width

    Raises:
        InputValidationError: If the runtime init checkpoint or a matching load is missing
    """
    init = _last_checkpoint(checkpoints, RUNTIME_INIT)
    if init is None:
        raise InputValidationError(f"Couldn't find {RUNTIME_INIT} checkpoint in trace file.")
    suspend = _last_checkpoint(checkpoints, RUNTIME_SUSPEND)
    resume = _last_checkpoint(checkpoints, RUNTIME_RESUME)
    suspended = resume.timestamp - suspend.timestamp if suspend and resume else 0

    resolver = NameResolver(directory, name_width)
    selected = []
    for load in method_loads:
        descriptor = directory.resolve(load.identity)
        if not isinstance(descriptor, MethodDescriptor):
            continue
        if not method_filter or method_filter == "*" or method_filter in descriptor.qualified_name:
            selected.append(load)
            if not method_filter:
                break

    if not selected:
        raise InputValidationError(f"Couldn't find method = {method_filter} in trace file.")

    rows = [
        StartupRow(
            load.identity,
            resolver.display_name(load.identity),
            truncating_div(load.timestamp - init.timestamp - suspended, TICKS_PER_MILLISECOND)
        )
        for load in selected
    ]
    return StartupReport(method_filter, rows, init.timestamp, suspended)
