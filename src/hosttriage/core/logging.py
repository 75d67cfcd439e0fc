"""Logging and progress utilities for hosttriage.

All progress and log output goes to stderr to keep stdout clean
for the machine-readable run summary.
"""

import json
import sys
import threading
import time
from datetime import UTC, datetime
from typing import Any, Literal

_verbose = False
_quiet = False
_log_format: Literal["text", "json"] = "text"

# Collectors log from worker threads
_write_lock = threading.Lock()


def set_verbose(verbose: bool) -> None:
    """Set verbose mode."""
    global _verbose
    _verbose = verbose


def set_quiet(quiet: bool) -> None:
    """Set quiet mode."""
    global _quiet
    _quiet = quiet


def is_quiet() -> bool:
    return _quiet


def configure_logging(
    log_format: Literal["text", "json"] = "text",
    quiet: bool = False,
    verbose: bool = False,
) -> None:
    """Configure logging settings.

    Args:
        log_format: Output format for log messages
        quiet: Suppress progress and info output
        verbose: Emit debug messages
    """
    global _log_format, _quiet, _verbose
    _log_format = log_format
    _quiet = quiet
    _verbose = verbose


def log(
    message: str,
    level: Literal["debug", "info", "warning", "error"] = "info",
    **context: Any,
) -> None:
    """Log a message to stderr.

    Args:
        message: Log message
        level: Log level
        **context: Additional context to include
    """
    if _quiet and level in ("debug", "info"):
        return

    if level == "debug" and not _verbose:
        return

    if _log_format == "json":
        line = json.dumps(
            {
                "timestamp": datetime.now(UTC).isoformat(),
                "level": level,
                "message": message,
                **context,
            },
            default=str,
        )
    else:
        prefix = f"[{level.upper()}]" if level != "info" else ""
        line = f"{prefix} {message}" if prefix else message

    with _write_lock:
        print(line, file=sys.stderr)


def debug(message: str, **context: Any) -> None:
    """Log a debug message."""
    log(message, level="debug", **context)


def info(message: str, **context: Any) -> None:
    """Log an info message."""
    log(message, level="info", **context)


def warning(message: str, **context: Any) -> None:
    """Log a warning message."""
    log(message, level="warning", **context)


def error(message: str, **context: Any) -> None:
    """Log an error message."""
    log(message, level="error", **context)


class CollectorProgress:
    """Reports per-collector completion to stderr.

    One line per finished collector, e.g.
    ``[3/7] scheduled_tasks: 42 findings (1.2s)``.
    """

    def __init__(self, total: int, description: str = "Collecting"):
        self.total = total
        self.description = description
        self.completed = 0
        self.findings = 0
        self.start_time = time.perf_counter()
        self._lock = threading.Lock()

    def collector_done(
        self,
        name: str,
        findings: int,
        status: str = "ok",
        duration_ms: int = 0,
    ) -> None:
        """Record one finished collector.

        Args:
            name: Collector name
            findings: Number of findings it produced
            status: ok, error or timeout
            duration_ms: Wall time spent in the collector
        """
        with self._lock:
            self.completed += 1
            self.findings += findings
            current = self.completed

        if _quiet:
            return

        if _log_format == "json":
            log(
                "collector finished",
                collector=name,
                findings=findings,
                status=status,
                duration_ms=duration_ms,
                current=current,
                total=self.total,
            )
            return

        suffix = "" if status == "ok" else f" [{status}]"
        log(
            f"[{current}/{self.total}] {name}: {findings} findings "
            f"({_format_duration(duration_ms / 1000)}){suffix}"
        )

    def finish(self) -> None:
        """Report the run total."""
        if _quiet:
            return

        elapsed = time.perf_counter() - self.start_time
        if _log_format == "json":
            log(
                "collection complete",
                description=self.description,
                collectors=self.completed,
                findings=self.findings,
                duration_seconds=round(elapsed, 2),
            )
        else:
            log(
                f"{self.description}: Complete - {self.findings} findings from "
                f"{self.completed} collectors in {_format_duration(elapsed)}"
            )


def _format_duration(seconds: float) -> str:
    """Format duration in human-readable form."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        minutes = int(seconds // 60)
        secs = int(seconds % 60)
        return f"{minutes}m {secs}s"
    else:
        hours = int(seconds // 3600)
        minutes = int((seconds % 3600) // 60)
        return f"{hours}h {minutes}m"
