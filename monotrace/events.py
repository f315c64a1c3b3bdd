"""Typed trace events and the JSON Lines reader that produces them."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Union

from monotrace.errors import TraceFormatError


@dataclass(frozen=True)
class MethodEnter:
    method_id: int
    thread_id: int
    timestamp: int


@dataclass(frozen=True)
class MethodLeave:
    method_id: int
    thread_id: int
    timestamp: int
    exception: bool = False


@dataclass(frozen=True)
class MethodDefined:
    """JIT, load or rundown event carrying method metadata.

    Rundown events have no meaningful timestamp and leave it as None.
    """

    method_id: int
    namespace: str
    name: str
    signature: str = ""
    timestamp: int | None = None


@dataclass(frozen=True)
class TypeDefined:
    vtable_id: int
    class_id: int
    class_name: str


@dataclass(frozen=True)
class ObjectAllocated:
    vtable_id: int
    size: int


@dataclass(frozen=True)
class Checkpoint:
    name: str
    timestamp: int


TraceEvent = Union[MethodEnter, MethodLeave, MethodDefined, TypeDefined, ObjectAllocated, Checkpoint]


def _as_int(record: dict, key: str) -> int:
    if key not in record:
        raise ValueError(f"missing field '{key}'")
    value = record[key]
    if isinstance(value, bool):
        raise ValueError(f"field '{key}' is not an integer: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.lower().startswith("0x"):
            return int(text[2:], 16)
        return int(text)
    raise ValueError(f"field '{key}' is not an integer: {value!r}")


def _as_str(record: dict, key: str, default: str | None = None) -> str:
    value = record.get(key)
    if value is None:
        value = default
    if value is None:
        raise ValueError(f"missing field '{key}'")
    return str(value)


def _enter(record: dict) -> MethodEnter:
    return MethodEnter(
        method_id=_as_int(record, "method_id"),
        thread_id=_as_int(record, "thread_id"),
        timestamp=_as_int(record, "timestamp")
    )


def _leave(record: dict) -> MethodLeave:
    return MethodLeave(
        method_id=_as_int(record, "method_id"),
        thread_id=_as_int(record, "thread_id"),
        timestamp=_as_int(record, "timestamp")
    )


def _exception_leave(record: dict) -> MethodLeave:
    return MethodLeave(
        method_id=_as_int(record, "method_id"),
        thread_id=_as_int(record, "thread_id"),
        timestamp=_as_int(record, "timestamp"),
        exception=True
    )


def _defined(record: dict) -> MethodDefined:
    timestamp = _as_int(record, "timestamp") if record.get("timestamp") is not None else None
    return MethodDefined(
        method_id=_as_int(record, "method_id"),
        namespace=_as_str(record, "namespace", ""),
        name=_as_str(record, "name"),
        signature=_as_str(record, "signature", ""),
        timestamp=timestamp
    )


def _type_defined(record: dict) -> TypeDefined:
    return TypeDefined(
        vtable_id=_as_int(record, "vtable_id"),
        class_id=_as_int(record, "class_id"),
        class_name=_as_str(record, "class_name")
    )


def _allocated(record: dict) -> ObjectAllocated:
    return ObjectAllocated(
        vtable_id=_as_int(record, "vtable_id"),
        size=_as_int(record, "size")
    )


def _checkpoint(record: dict) -> Checkpoint:
    return Checkpoint(
        name=_as_str(record, "name"),
        timestamp=_as_int(record, "timestamp")
    )


_PARSERS = {
    "method_enter": _enter,
    "method_leave": _leave,
    "method_exception_leave": _exception_leave,
    "method_defined": _defined,
    "method_load": _defined,
    "jit_done": _defined,
    "type_defined": _type_defined,
    "object_allocated": _allocated,
    "checkpoint": _checkpoint,
}


def parse_event(record: dict[str, Any]) -> TraceEvent | None:
    """
    Convert one decoded record into a typed event.

    Returns:
        The event, or None when the record's kind is not one the engine consumes

    Raises:
        ValueError: If a known record kind is missing a field or has a bad value
    """
    kind = record.get("event")
    parser = _PARSERS.get(kind) if isinstance(kind, str) else None
    if parser is None:
        return None
    return parser(record)


class EventStream:
    """
    Iterates typed events from JSON Lines text, in stream order.

    Unknown event kinds are skipped and counted in `skipped`; the decoder emits
    many events that no report subscribes to.
    """

    def __init__(self, lines: Iterable[str]):
        self._lines = lines
        self.skipped = 0
        self.parsed = 0

    def _numbered_lines(self) -> Iterator[tuple[int, str]]:
        lines = iter(self._lines)
        line_no = 0
        while True:
            line_no += 1
            try:
                line = next(lines)
            except StopIteration:
                return
            except UnicodeDecodeError as exc:
                raise TraceFormatError("not a UTF-8 JSON Lines file", line_no) from exc
            yield line_no, line

    def __iter__(self) -> Iterator[TraceEvent]:
        for line_no, line in self._numbered_lines():
            text = line.strip()
            if not text:
                continue
            try:
                record = json.loads(text)
            except json.JSONDecodeError as exc:
                raise TraceFormatError(f"invalid JSON: {exc.msg}", line_no) from exc
            if not isinstance(record, dict):
                raise TraceFormatError("event record is not an object", line_no)
            try:
                event = parse_event(record)
            except ValueError as exc:
                raise TraceFormatError(f"{record.get('event')}: {exc}", line_no) from exc
            if event is None:
                self.skipped += 1
                continue
            self.parsed += 1
            yield event

