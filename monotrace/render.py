"""Console rendering of report rows with rich tables."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from monotrace.config import ReportConfig, TimeFormat
from monotrace.directory import identity_token
from monotrace.views import (
    AggregateRow,
    DiffRow,
    IdentityRow,
    StackRow,
    StartupReport,
    ThreadReport
)


def name_width_for(console_width: int, share: float) -> int:
    """Label width for a name column taking `share` of the console."""
    return max(int(console_width * share) - 10, 10)


def format_time(ticks: int | None, config: ReportConfig) -> str:
    if ticks is None:
        return ""
    if config.time_format == TimeFormat.TICKS:
        return str(ticks)
    return f"{config.display_time(ticks):,.3f}"


def format_signed(value: int) -> str:
    if value > 0:
        return f"+{value}"
    return str(value)


def _time_header(config: ReportConfig, label: str) -> str:
    unit = "Ticks" if config.time_format == TimeFormat.TICKS else "MSecs"
    return f"{label} {unit}".strip()


def _table(title: str | None = None) -> Table:
    return Table(title=title, title_justify="left", box=None, header_style="bold")


def render_thread_tops(console: Console, reports: list[ThreadReport], config: ReportConfig) -> None:
    for report in reports:
        table = _table(f"ThreadID: {identity_token(report.thread_id)}")
        table.add_column("MethodID", no_wrap=True)
        table.add_column("Method")
        table.add_column(_time_header(config, ""), justify="right")
        for row in report.rows:
            table.add_row(identity_token(row.identity), escape(row.name), format_time(row.duration, config))
        console.print(table)
        console.print()


def render_aggregate(console: Console, rows: list[AggregateRow], config: ReportConfig) -> None:
    table = _table()
    table.add_column("MethodID", no_wrap=True)
    table.add_column("Method")
    table.add_column(_time_header(config, "Avg"), justify="right")
    table.add_column(_time_header(config, "Total"), justify="right")
    table.add_column("Count", justify="right")
    for row in rows:
        table.add_row(
            identity_token(row.identity),
            escape(row.name),
            format_time(row.average, config),
            format_time(row.total, config),
            str(row.count)
        )
    console.print(table)


def render_heap(console: Console, rows: list[AggregateRow]) -> None:
    table = _table()
    table.add_column("VTableID", no_wrap=True)
    table.add_column("Type")
    table.add_column("Avg", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("Count", justify="right")
    for row in rows:
        table.add_row(identity_token(row.identity), escape(row.name), str(row.average), str(row.total), str(row.count))
    console.print(table)


def render_heap_diff(console: Console, rows: list[DiffRow]) -> None:
    table = _table()
    table.add_column("VTableID", no_wrap=True)
    table.add_column("Type")
    table.add_column("Size", justify="right")
    table.add_column("Count", justify="right")
    for row in rows:
        table.add_row(
            identity_token(row.identity),
            escape(row.name),
            format_signed(row.delta_total),
            format_signed(row.delta_count)
        )
    console.print(table)


def render_stacks(console: Console, stacks: list[list[StackRow]], config: ReportConfig) -> None:
    for stack in stacks:
        table = _table()
        table.add_column("MethodID", no_wrap=True)
        table.add_column("Method")
        table.add_column(_time_header(config, ""), justify="right")
        for row in stack:
            table.add_row(identity_token(row.identity), escape(row.name), format_time(row.duration, config))
        console.print(table)
        console.print()


def render_incomplete(console: Console, reports: list[ThreadReport]) -> None:
    for report in reports:
        table = _table(f"ThreadID: {identity_token(report.thread_id)}")
        table.add_column("MethodID", no_wrap=True)
        table.add_column("Method")
        for row in report.rows:
            table.add_row(identity_token(row.identity), escape(row.name))
        console.print(table)
        console.print()


def render_identities(console: Console, rows: list[IdentityRow]) -> None:
    table = _table()
    table.add_column("MethodID", no_wrap=True)
    table.add_column("Method")
    for row in rows:
        table.add_row(identity_token(row.identity), escape(row.name))
    console.print(table)


def render_startup(console: Console, report: StartupReport) -> None:
    console.print(
        "Time between runtime init and specific method load, measured in milliseconds, "
        f"method filter = '{escape(report.method_filter)}'"
    )
    console.print()
    table = _table()
    table.add_column("MethodID", no_wrap=True)
    table.add_column("Method")
    table.add_column("MSecs", justify="right")
    for row in report.rows:
        table.add_row(identity_token(row.identity), escape(row.name), str(row.latency_ms))
    console.print(table)
