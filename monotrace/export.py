"""File exports: pipe-delimited tables for downstream tooling and JSON reports."""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path

from monotrace.callstack import Interval
from monotrace.directory import IdentityDirectory, MethodDescriptor
from monotrace.errors import InputValidationError

logger = logging.getLogger(__name__)


def _prepare(path: Path, replace: bool) -> None:
    if path.exists():
        if not replace:
            raise InputValidationError(f"{path} already exists, specify replace to override.")
        path.unlink()


def export_tables(
    trace_path: str | Path,
    directory: IdentityDirectory,
    intervals: dict[int, list[Interval]],
    output_dir: str | Path = ".",
    use_temp_dir: bool = False,
    replace: bool = False
) -> tuple[Path, Path]:
    """
    Write <stem>-methods.tbl and <stem>-method-traces.tbl.

    Methods are written as identity|namespace|name|signature and intervals as
    threadId|identity|startTicks|stopTicks, one record per line.

    Args:
        trace_path: Trace file the data came from, names the output files
        directory: Method directory
        intervals: Committed intervals per thread
        output_dir: Destination directory, created if missing
        use_temp_dir: Write into a new randomly named subdirectory of output_dir
        replace: Overwrite existing files instead of failing

    Returns:
        Tuple of (methods_path, traces_path)
    """
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    if use_temp_dir:
        out = Path(tempfile.mkdtemp(dir=out))

    stem = Path(trace_path).stem
    methods_path = out / f"{stem}-methods.tbl"
    traces_path = out / f"{stem}-method-traces.tbl"
    _prepare(methods_path, replace)
    _prepare(traces_path, replace)

    with open(methods_path, "w", encoding="utf-8") as f:
        for identity, descriptor in directory.items():
            if not isinstance(descriptor, MethodDescriptor):
                continue
            f.write(f"{identity}|{descriptor.namespace}|{descriptor.name}|{descriptor.signature}\n")

    with open(traces_path, "w", encoding="utf-8") as f:
        for thread_id, items in intervals.items():
            for interval in items:
                f.write(f"{thread_id}|{interval.identity}|{interval.start}|{interval.stop}\n")

    logger.info("Exported %d methods to %s", len(directory), methods_path)
    return methods_path, traces_path


def write_json(rows: list, out: str | Path, metadata: dict | None = None) -> None:
    """Write report rows (objects with to_dict) as an indented JSON document."""
    payload = dict(metadata or {})
    payload["rows"] = [row.to_dict() for row in rows]
    with open(out, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)
