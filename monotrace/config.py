"""Report configuration and parsing of user-supplied option values."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from monotrace.aggregate import SortField, SortOrder
from monotrace.errors import InputValidationError

DEFAULT_MAX_ENTRIES = 100
TICKS_PER_MILLISECOND = 10_000

_SORT_FIELD_ALIASES = {
    "avg": SortField.AVERAGE,
    "average": SortField.AVERAGE,
    "total": SortField.TOTAL,
    "size": SortField.TOTAL,
    "count": SortField.COUNT,
}


class TimeFormat(str, Enum):
    MILLISECONDS = "ms"
    TICKS = "ticks"


def _parse_int(text: str) -> int:
    value = text.strip()
    if value.lower().startswith("0x"):
        return int(value[2:], 16)
    return int(value, 10)


def parse_identity(text: str) -> int:
    """Parse a decimal or 0x-prefixed hexadecimal identity."""
    try:
        return _parse_int(text)
    except ValueError:
        raise InputValidationError(f"Invalid numeric value, {text}") from None


def parse_limit(text: str | int) -> int:
    """Parse a non-negative entry limit (decimal or 0x hex)."""
    if isinstance(text, int):
        value = text
    else:
        try:
            value = _parse_int(text)
        except ValueError:
            raise InputValidationError(f"Invalid numeric value, {text}") from None
    if value < 0:
        raise InputValidationError(f"Use positive numeric value, {text}")
    return value


def parse_filter(text: str | None) -> tuple[str, int | None]:
    """
    Split a filter argument into a name pattern and the identity it denotes, if any.

    A filter such as "0x7F" or "127" also matches identity 127 exactly; any other
    text is only a substring pattern on names.
    """
    if not text:
        return "", None
    try:
        return text, _parse_int(text)
    except ValueError:
        return text, None


def parse_sort_field(text: str) -> SortField:
    field = _SORT_FIELD_ALIASES.get(text.strip().lower())
    if field is None:
        raise InputValidationError(f"Unknown sort field, {text}, use avg, total, size or count")
    return field


def parse_sort_order(text: str) -> SortOrder:
    try:
        return SortOrder(text.strip().lower())
    except ValueError:
        raise InputValidationError(f"Unknown sort order, {text}, use asc or desc") from None


def parse_time_format(text: str) -> TimeFormat:
    try:
        return TimeFormat(text.strip().lower())
    except ValueError:
        raise InputValidationError(f"Unknown time format, {text}, use ticks or ms") from None


@dataclass(frozen=True)
class ReportConfig:
    """Options shared by the report views. Built once, never mutated."""

    max_entries: int = DEFAULT_MAX_ENTRIES
    order: SortOrder = SortOrder.DESCENDING
    sort_field: SortField = SortField.AVERAGE
    name_filter: str = ""
    filter_identity: int | None = None
    name_width: int = 70
    show_signature: bool = False
    time_format: TimeFormat = TimeFormat.MILLISECONDS

    def includes(self, identity: int, full_name: str) -> bool:
        """Exact identity match wins; otherwise '*' or a substring match on the full name."""
        if self.filter_identity is not None and identity == self.filter_identity:
            return True
        return self.name_filter == "*" or self.name_filter in full_name

    def display_time(self, ticks: int) -> float | int:
        if self.time_format == TimeFormat.TICKS:
            return ticks
        return ticks / TICKS_PER_MILLISECOND


def build_config(
    max_entries: str | int = DEFAULT_MAX_ENTRIES,
    order: str = "desc",
    sort_field: str = "avg",
    name_filter: str | None = None,
    name_width: int = 70,
    show_signature: bool = False,
    time_format: str = "ms"
) -> ReportConfig:
    """Validate raw option values into a ReportConfig."""
    pattern, identity = parse_filter(name_filter)
    return ReportConfig(
        max_entries=parse_limit(max_entries),
        order=parse_sort_order(order),
        sort_field=parse_sort_field(sort_field),
        name_filter=pattern,
        filter_identity=identity,
        name_width=name_width,
        show_signature=show_signature,
        time_format=parse_time_format(time_format)
    )
