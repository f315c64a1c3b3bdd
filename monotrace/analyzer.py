"""Core analysis loop: dispatches typed trace events into directories, stacks and aggregates."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from monotrace.aggregate import AggregateAccumulator
from monotrace.callstack import CallStackReconstructor, CaptureMode
from monotrace.diff import TraceSnapshot
from monotrace.directory import IdentityDirectory, MethodDescriptor, TypeDescriptor
from monotrace.events import (
    Checkpoint,
    EventStream,
    MethodDefined,
    MethodEnter,
    MethodLeave,
    ObjectAllocated,
    TraceEvent,
    TypeDefined
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MethodLoad:
    """First timestamped JIT/load of a method."""

    identity: int
    timestamp: int


class TraceAnalyzer:
    """
    Consumes one trace file's ordered event stream.

    All state is owned by this instance and written only while the stream is
    processed; views read it afterwards.
    """

    def __init__(self, path: str = "", mode: CaptureMode = CaptureMode.NONE, target: int | None = None):
        self.path = path
        self.methods = IdentityDirectory()
        self.types = IdentityDirectory()
        self.method_costs = AggregateAccumulator()
        self.allocations = AggregateAccumulator()
        self.stacks = CallStackReconstructor(mode, target)
        self.checkpoints: list[Checkpoint] = []
        self.method_loads: list[MethodLoad] = []
        self._loaded: set[int] = set()
        self.event_count = 0

    def process(self, events: Iterable[TraceEvent]) -> "TraceAnalyzer":
        for event in events:
            self.dispatch(event)
        return self

    def dispatch(self, event: TraceEvent) -> None:
        self.event_count += 1
        if isinstance(event, MethodEnter):
            self.stacks.enter(event.method_id, event.thread_id, event.timestamp)
        elif isinstance(event, MethodLeave):
            interval = self.stacks.leave(event.method_id, event.thread_id, event.timestamp)
            if event.exception:
                logger.debug(
                    "Method %s on thread %s left through an exception at %s",
                    hex(event.method_id), hex(event.thread_id), event.timestamp
                )
            if interval is not None and self.stacks.commit:
                self.method_costs.record(interval.identity, interval.duration)
        elif isinstance(event, MethodDefined):
            self.methods.define(
                event.method_id,
                MethodDescriptor(event.namespace, event.name, event.signature)
            )
            if event.timestamp is not None and event.method_id not in self._loaded:
                self._loaded.add(event.method_id)
                self.method_loads.append(MethodLoad(event.method_id, event.timestamp))
        elif isinstance(event, TypeDefined):
            self.types.define(event.vtable_id, TypeDescriptor(event.class_id, event.class_name))
        elif isinstance(event, ObjectAllocated):
            self.allocations.record(event.vtable_id, event.size)
        elif isinstance(event, Checkpoint):
            self.checkpoints.append(event)
        else:
            raise TypeError(f"Unsupported trace event: {event!r}")

    def heap_snapshot(self) -> TraceSnapshot:
        return TraceSnapshot(self.path, self.types, self.allocations)

    def summary(self) -> dict:
        return {
            "trace_path": self.path,
            "events": self.event_count,
            "methods": len(self.methods),
            "types": len(self.types),
            "threads_with_intervals": len(self.stacks.intervals()),
            "incomplete_threads": len(self.stacks.incomplete_stacks()),
            "recovery": self.stacks.stats.to_dict()
        }


def analyze_trace(
    trace_path: str | Path,
    mode: CaptureMode = CaptureMode.NONE,
    target: int | None = None
) -> TraceAnalyzer:
    """
    Run one decoded trace file through a fresh analyzer.

    Args:
        trace_path: Path to the JSON Lines event file
        mode: Caller/callee capture mode
        target: Target identity for capture modes

    Returns:
        The analyzer, read-only from here on
    """
    analyzer = TraceAnalyzer(str(trace_path), mode, target)
    with open(trace_path, "r", encoding="utf-8") as f:
        stream = EventStream(f)
        analyzer.process(stream)

    logger.info(
        "Parsed %d events from %s (%d skipped), methods (%d), types (%d)",
        stream.parsed, trace_path, stream.skipped, len(analyzer.methods), len(analyzer.types)
    )
    logger.debug("Analysis summary: %s", analyzer.summary())
    stats = analyzer.stacks.stats
    if stats.total:
        logger.warning(
            "Recovered from %d mismatched leave(s) discarding %d orphaned frame(s); dropped %d unmatched leave(s)",
            stats.mismatched_leaves, stats.orphaned_frames, stats.dropped_leaves
        )
    return analyzer


def load_heap_snapshots(trace_paths: list[str | Path]) -> list[TraceSnapshot]:
    """Consume each trace to completion, in order, into independent snapshots."""
    return [analyze_trace(path).heap_snapshot() for path in trace_paths]
