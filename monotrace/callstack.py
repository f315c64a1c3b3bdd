"""Per-thread call stack reconstruction from method enter/leave events."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class CaptureMode(Enum):
    NONE = "none"
    CALLERS = "callers"
    CALLEES = "callees"


@dataclass(frozen=True)
class Frame:
    """An in-flight call. serial is unique per reconstructor and orders enters."""

    identity: int
    start: int
    serial: int


@dataclass(frozen=True)
class Interval:
    thread_id: int
    identity: int
    start: int
    stop: int

    @property
    def duration(self) -> int:
        return self.stop - self.start


@dataclass(frozen=True)
class CapturedFrame:
    identity: int
    start: int
    stop: int | None = None

    @property
    def duration(self) -> int | None:
        if self.stop is None:
            return None
        return self.stop - self.start


@dataclass
class RecoveryStats:
    """Counters for enter/leave anomalies absorbed during reconstruction."""

    mismatched_leaves: int = 0
    orphaned_frames: int = 0
    dropped_leaves: int = 0

    @property
    def total(self) -> int:
        return self.mismatched_leaves + self.dropped_leaves

    def to_dict(self) -> dict:
        return {
            "mismatched_leaves": self.mismatched_leaves,
            "orphaned_frames": self.orphaned_frames,
            "dropped_leaves": self.dropped_leaves
        }


class CallStackReconstructor:
    """
    Turns enter/leave events into matched intervals, one stack per thread.

    A leave that does not match the top frame resynchronizes on the nearest
    matching frame below it and discards the frames above as orphaned. A leave
    with no matching frame is dropped. Neither case raises.

    In CALLERS mode, every enter of the target identity captures a copy of the
    thread's stack. In CALLEES mode, every leave whose frame has the target as an
    ancestor captures a copy of the stack from the root through the closed frame.
    Intervals are not committed in capture modes unless commit is True.
    """

    def __init__(self, mode: CaptureMode = CaptureMode.NONE, target: int | None = None, commit: bool | None = None):
        if mode != CaptureMode.NONE and target is None:
            raise ValueError(f"{mode.value} capture requires a target identity")
        self.mode = mode
        self.target = target
        self.commit = mode == CaptureMode.NONE if commit is None else commit
        self.stats = RecoveryStats()
        self._stacks: dict[int, list[Frame]] = {}
        self._intervals: dict[int, list[Interval]] = {}
        self._captured: list[tuple[Frame, ...]] = []
        self._stops: dict[int, int] = {}
        self._captured_serials: set[int] = set()
        self._next_serial = 0

    def enter(self, identity: int, thread_id: int, timestamp: int) -> None:
        stack = self._stacks.setdefault(thread_id, [])
        stack.append(Frame(identity, timestamp, self._next_serial))
        self._next_serial += 1

        if self.mode == CaptureMode.CALLERS and identity == self.target:
            self._capture(stack)

    def leave(self, identity: int, thread_id: int, timestamp: int) -> Interval | None:
        """
        Close the nearest open frame of identity on thread_id.

        Returns:
            The completed interval, or None if the leave was dropped
        """
        stack = self._stacks.get(thread_id)
        index = self._find_frame(stack, identity) if stack else None
        if index is None:
            self.stats.dropped_leaves += 1
            logger.debug(
                "Dropped leave of %s on thread %s at %s: no open frame",
                hex(identity), hex(thread_id), timestamp
            )
            return None

        orphaned = len(stack) - index - 1
        if orphaned:
            self.stats.mismatched_leaves += 1
            self.stats.orphaned_frames += orphaned
            logger.debug(
                "Mismatched leave of %s on thread %s: discarding %d orphaned frame(s)",
                hex(identity), hex(thread_id), orphaned
            )

        frame = stack[index]
        if self.mode == CaptureMode.CALLEES and any(f.identity == self.target for f in stack[:index]):
            self._capture(stack[:index + 1])
        if frame.serial in self._captured_serials:
            self._stops[frame.serial] = timestamp
        del stack[index:]

        interval = Interval(thread_id, identity, frame.start, timestamp)
        if self.commit:
            self._intervals.setdefault(thread_id, []).append(interval)
        return interval

    def _capture(self, frames: list[Frame]) -> None:
        self._captured.append(tuple(frames))
        self._captured_serials.update(frame.serial for frame in frames)

    @staticmethod
    def _find_frame(stack: list[Frame], identity: int) -> int | None:
        for index in range(len(stack) - 1, -1, -1):
            if stack[index].identity == identity:
                return index
        return None

    def intervals(self) -> dict[int, list[Interval]]:
        """Committed intervals per thread, in completion order."""
        return {thread_id: list(items) for thread_id, items in self._intervals.items()}

    def incomplete_stacks(self) -> dict[int, tuple[Frame, ...]]:
        """Frames still open per thread, root first. Threads with empty stacks are omitted."""
        return {thread_id: tuple(stack) for thread_id, stack in self._stacks.items() if stack}

    def captured_stacks(self) -> list[tuple[CapturedFrame, ...]]:
        """Captured stacks, root first, with stop times of frames that later completed."""
        return [
            tuple(CapturedFrame(frame.identity, frame.start, self._stops.get(frame.serial)) for frame in stack)
            for stack in self._captured
        ]
