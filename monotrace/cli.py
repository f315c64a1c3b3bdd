"""CLI entry point for monotrace."""

import logging
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from monotrace import render, views
from monotrace.analyzer import analyze_trace, load_heap_snapshots
from monotrace.callstack import CaptureMode
from monotrace.config import ReportConfig, build_config, parse_identity
from monotrace.diff import diff_snapshots
from monotrace.errors import MonotraceError
from monotrace.export import export_tables, write_json

app = typer.Typer(
    help="monotrace - Analyze Mono runtime method, heap and startup traces",
    no_args_is_help=True
)
console = Console()
err_console = Console(stderr=True)


@app.callback(invoke_without_command=True)
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log parsing progress and recovery details")
):
    """monotrace - Analyze Mono runtime method, heap and startup traces."""
    root = logging.getLogger()
    root.handlers = [RichHandler(console=err_console, show_path=False)]
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)


def _check_trace(path: Path) -> None:
    if not path.exists():
        console.print(f"[red]Error:[/red] Trace file not found: {escape(str(path))}")
        raise typer.Exit(code=1)
    if not path.is_file():
        console.print(f"[red]Error:[/red] Path is not a file: {escape(str(path))}")
        raise typer.Exit(code=1)


def _fail(exc: Exception) -> NoReturn:
    console.print(f"[red]Error:[/red] {escape(str(exc))}")
    raise typer.Exit(code=1)


def _config(share: float, **options) -> ReportConfig:
    return build_config(name_width=render.name_width_for(console.width, share), **options)


MAX_OPTION = typer.Option("100", "--max", help="Max number of entries to display (decimal or 0x hex)")
ORDER_OPTION = typer.Option("desc", "--order", help="Sort order: asc or desc")
FILTER_OPTION = typer.Option(None, "--filter", help="Only include entries whose name contains FILTER, or whose id equals it")
TIME_FORMAT_OPTION = typer.Option("ms", "--time-format", help="Display times in ms or ticks")
SHOW_SIG_OPTION = typer.Option(False, "--show-sig", help="Display full method signatures")
JSON_OPTION = typer.Option(None, "--json", help="Also write the report rows to a JSON file")


@app.command()
def top(
    trace: Path = typer.Argument(..., help="Path to decoded trace (JSON Lines)"),
    max_entries: str = MAX_OPTION,
    order: str = ORDER_OPTION,
    name_filter: Optional[str] = FILTER_OPTION,
    time_format: str = TIME_FORMAT_OPTION,
    show_sig: bool = SHOW_SIG_OPTION
):
    """List method execution times, per thread."""
    _check_trace(trace)
    try:
        config = _config(
            0.75,
            max_entries=max_entries,
            order=order,
            name_filter=name_filter,
            show_signature=show_sig,
            time_format=time_format
        )
        analyzer = analyze_trace(trace)
        reports = views.top_per_thread(analyzer.stacks.intervals(), analyzer.methods, config)
    except (MonotraceError, OSError) as e:
        _fail(e)
    render.render_thread_tops(console, reports, config)


@app.command()
def aggregate(
    trace: Path = typer.Argument(..., help="Path to decoded trace (JSON Lines)"),
    sort: str = typer.Option("avg", "--sort", help="Sort field: avg, total or count"),
    max_entries: str = MAX_OPTION,
    order: str = ORDER_OPTION,
    name_filter: Optional[str] = FILTER_OPTION,
    time_format: str = TIME_FORMAT_OPTION,
    show_sig: bool = SHOW_SIG_OPTION,
    json_out: Optional[Path] = JSON_OPTION
):
    """List aggregated method execution times."""
    _check_trace(trace)
    try:
        config = _config(
            0.55,
            max_entries=max_entries,
            order=order,
            sort_field=sort,
            name_filter=name_filter,
            show_signature=show_sig,
            time_format=time_format
        )
        analyzer = analyze_trace(trace)
        rows = views.ranked_aggregate(analyzer.method_costs, analyzer.methods, config)
        if json_out is not None:
            write_json(rows, json_out, {"trace_path": str(trace), "metric": "ticks"})
    except (MonotraceError, OSError) as e:
        _fail(e)
    render.render_aggregate(console, rows, config)


@app.command("incomplete-stacks")
def incomplete_stacks(
    trace: Path = typer.Argument(..., help="Path to decoded trace (JSON Lines)"),
    name_filter: Optional[str] = FILTER_OPTION,
    show_sig: bool = SHOW_SIG_OPTION
):
    """List thread stacks including frames never left during the trace."""
    _check_trace(trace)
    try:
        config = _config(0.85, name_filter=name_filter, show_signature=show_sig)
        analyzer = analyze_trace(trace)
        reports = views.incomplete_stacks(analyzer.stacks.incomplete_stacks(), analyzer.methods, config)
    except (MonotraceError, OSError) as e:
        _fail(e)
    render.render_incomplete(console, reports)


def _stack_command(trace: Path, method: str, mode: CaptureMode, time_format: str, show_sig: bool) -> None:
    _check_trace(trace)
    try:
        target = parse_identity(method)
        config = _config(0.75, show_signature=show_sig, time_format=time_format)
        analyzer = analyze_trace(trace, mode, target)
        captured = analyzer.stacks.captured_stacks()
        if mode == CaptureMode.CALLERS:
            stacks = views.caller_stacks(captured, target, analyzer.methods, config)
        else:
            stacks = views.callee_stacks(captured, target, analyzer.methods, config)
    except (MonotraceError, OSError) as e:
        _fail(e)
    render.render_stacks(console, stacks, config)


@app.command()
def callers(
    trace: Path = typer.Argument(..., help="Path to decoded trace (JSON Lines)"),
    method: str = typer.Option(..., "--method", help="Method id (decimal or 0x hex)"),
    time_format: str = TIME_FORMAT_OPTION,
    show_sig: bool = SHOW_SIG_OPTION
):
    """List all stacks calling a method."""
    _stack_command(trace, method, CaptureMode.CALLERS, time_format, show_sig)


@app.command()
def callees(
    trace: Path = typer.Argument(..., help="Path to decoded trace (JSON Lines)"),
    method: str = typer.Option(..., "--method", help="Method id (decimal or 0x hex)"),
    time_format: str = TIME_FORMAT_OPTION,
    show_sig: bool = SHOW_SIG_OPTION
):
    """List all stacks made beneath a method."""
    _stack_command(trace, method, CaptureMode.CALLEES, time_format, show_sig)


@app.command("find-method")
def find_method(
    trace: Path = typer.Argument(..., help="Path to decoded trace (JSON Lines)"),
    name_filter: str = typer.Argument(..., help="Name substring, '*', or method id"),
    show_sig: bool = SHOW_SIG_OPTION
):
    """List all methods matching a filter."""
    _check_trace(trace)
    try:
        config = _config(0.85, name_filter=name_filter, show_signature=show_sig)
        analyzer = analyze_trace(trace)
        rows = views.find_identities(analyzer.methods, config)
    except (MonotraceError, OSError) as e:
        _fail(e)
    render.render_identities(console, rows)


@app.command()
def export(
    trace: Path = typer.Argument(..., help="Path to decoded trace (JSON Lines)"),
    out: Path = typer.Option(Path("."), "--out", help="Directory for the exported .tbl files"),
    temp: bool = typer.Option(False, "--temp", help="Create files in a new randomly named subdirectory"),
    replace: bool = typer.Option(False, "--replace", help="Replace files at destination if they exist")
):
    """Export methods and method traces into pipe-delimited .tbl files."""
    _check_trace(trace)
    try:
        analyzer = analyze_trace(trace)
        methods_path, traces_path = export_tables(
            trace,
            analyzer.methods,
            analyzer.stacks.intervals(),
            output_dir=out,
            use_temp_dir=temp,
            replace=replace
        )
    except (MonotraceError, OSError) as e:
        _fail(e)
    console.print(f"[green]✓[/green] Created {escape(str(methods_path))}")
    console.print(f"[green]✓[/green] Created {escape(str(traces_path))}")


@app.command()
def heap(
    trace: Path = typer.Argument(..., help="Path to decoded heap dump trace (JSON Lines)"),
    sort: str = typer.Option("avg", "--sort", help="Sort field: avg, size or count"),
    max_entries: str = MAX_OPTION,
    order: str = ORDER_OPTION,
    name_filter: Optional[str] = FILTER_OPTION,
    json_out: Optional[Path] = JSON_OPTION
):
    """List aggregated heap allocations per type."""
    _check_trace(trace)
    try:
        config = _config(0.55, max_entries=max_entries, order=order, sort_field=sort, name_filter=name_filter)
        snapshot = analyze_trace(trace).heap_snapshot()
        rows = views.ranked_aggregate(snapshot.aggregates, snapshot.directory, config)
        if json_out is not None:
            write_json(rows, json_out, {"trace_path": str(trace), "metric": "bytes"})
    except (MonotraceError, OSError) as e:
        _fail(e)
    render.render_heap(console, rows)


@app.command("heap-diff")
def heap_diff(
    first: Path = typer.Argument(..., help="Earlier heap dump trace"),
    second: Path = typer.Argument(..., help="Later heap dump trace"),
    sort: str = typer.Option("size", "--sort", help="Sort field: size or count"),
    max_entries: str = MAX_OPTION,
    order: str = ORDER_OPTION,
    name_filter: Optional[str] = FILTER_OPTION,
    json_out: Optional[Path] = JSON_OPTION
):
    """Show allocation increase/decrease between two heap dumps."""
    _check_trace(first)
    _check_trace(second)
    try:
        config = _config(0.60, max_entries=max_entries, order=order, sort_field=sort, name_filter=name_filter)
        snapshot_a, snapshot_b = load_heap_snapshots([first, second])
        rows = views.ranked_diff(diff_snapshots(snapshot_a, snapshot_b), config)
        if json_out is not None:
            write_json(rows, json_out, {"first": str(first), "second": str(second), "metric": "bytes"})
    except (MonotraceError, OSError) as e:
        _fail(e)
    render.render_heap_diff(console, rows)


@app.command()
def startup(
    trace: Path = typer.Argument(..., help="Path to decoded trace (JSON Lines)"),
    method: str = typer.Option(
        "",
        "--method",
        help="Method name filter; '*' analyzes all loaded methods, empty analyzes the first loaded method"
    )
):
    """Time between runtime init and specific method loads."""
    _check_trace(trace)
    try:
        analyzer = analyze_trace(trace)
        report = views.startup_latency(
            analyzer.method_loads,
            analyzer.checkpoints,
            analyzer.methods,
            method,
            render.name_width_for(console.width, 0.75)
        )
    except (MonotraceError, OSError) as e:
        _fail(e)
    render.render_startup(console, report)


if __name__ == "__main__":
    app()
