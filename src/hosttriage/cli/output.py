"""Output formatting for the hosttriage CLI.

stdout carries only the run summary, the collector listing or a
structured error. Progress and logs go to stderr.
"""

import json
import sys
from typing import Any, Literal, TextIO

from pydantic import BaseModel

from hosttriage.models.error import StructuredError
from hosttriage.models.run import RunSummary

OutputFormat = Literal["json", "human"]

_output_format: OutputFormat = "json"


def set_output_format(format: OutputFormat) -> None:
    """Set the global output format."""
    global _output_format
    _output_format = format


def get_output_format() -> OutputFormat:
    """Get the current output format."""
    return _output_format


def _to_jsonable(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", exclude_none=True)
    if isinstance(data, list):
        return [_to_jsonable(item) for item in data]
    return data


def output_json(data: Any, file: TextIO | None = None) -> None:
    """Write data as a single JSON line.

    One line per invocation keeps stdout easy to consume from scripts
    that read the last line.
    """
    file = file or sys.stdout
    json.dump(_to_jsonable(data), file, ensure_ascii=False, default=str)
    file.write("\n")
    file.flush()


def _write_summary(summary: RunSummary, file: TextIO) -> None:
    title = f"hosttriage {summary.command} on {summary.hostname}"
    file.write(f"{title}\n{'=' * len(title)}\n\n")
    file.write(f"Output directory: {summary.output_dir}\n")
    file.write(f"Started:          {summary.started_at}\n")
    file.write(f"Completed:        {summary.completed_at}\n")
    file.write(f"Records:          {summary.total_records}\n")

    if summary.by_category:
        file.write("\nBy category:\n")
        width = max(len(name) for name in summary.by_category)
        for name, count in summary.by_category.items():
            file.write(f"  {name:<{width}}  {count}\n")

    if summary.collectors:
        file.write("\nCollectors:\n")
        width = max(len(c["collector"]) for c in summary.collectors)
        for outcome in summary.collectors:
            line = (
                f"  {outcome['collector']:<{width}}  {outcome['status']:<7}  "
                f"{outcome['findings']:>5} records  {outcome['duration_ms']} ms"
            )
            error = outcome.get("error")
            if error:
                line += f"  ({error['message']})"
            file.write(line + "\n")

    files = [exported for export in summary.exports for exported in export.files]
    if files:
        file.write("\nFiles:\n")
        for exported in files:
            file.write(f"  {exported.path}  sha256={exported.sha256}\n")


def _write_error(error: StructuredError, file: TextIO) -> None:
    file.write(f"Error [{error.code}]: {error.message}\n")
    file.write(f"  Remediation: {error.remediation}\n")
    for key, value in (error.context or {}).items():
        if isinstance(value, list):
            file.write(f"  {key}:\n")
            for item in value:
                file.write(f"    - {item}\n")
        else:
            file.write(f"  {key}: {value}\n")


def _write_rows(rows: list[dict[str, Any]], file: TextIO) -> None:
    if not rows:
        return
    columns = list(rows[0])
    widths = {c: max(len(c), *(len(str(row.get(c, ""))) for row in rows)) for c in columns}
    file.write("  ".join(c.ljust(widths[c]) for c in columns).rstrip() + "\n")
    file.write("  ".join("-" * widths[c] for c in columns) + "\n")
    for row in rows:
        file.write("  ".join(str(row.get(c, "")).ljust(widths[c]) for c in columns).rstrip() + "\n")


def output_human(data: Any, file: TextIO | None = None) -> None:
    """Write data in a readable layout for an analyst at the console."""
    file = file or sys.stdout

    if isinstance(data, RunSummary):
        _write_summary(data, file)
    elif isinstance(data, StructuredError):
        _write_error(data, file)
    elif isinstance(data, list) and all(isinstance(row, dict) for row in data):
        _write_rows(data, file)
    else:
        file.write(f"{_to_jsonable(data)}\n")

    file.flush()


def output(data: Any, format: OutputFormat | None = None, file: TextIO | None = None) -> None:
    """Write data in the given format (the global one by default)."""
    if (format or _output_format) == "human":
        output_human(data, file=file)
    else:
        output_json(data, file=file)


def output_error(error: StructuredError, file: TextIO | None = None) -> None:
    """Write a structured error to stdout in the current format.

    Errors go to stdout, not stderr, so callers parse one stream.
    """
    output(error, file=file)
