"""End-to-end triage runs: persistence scan and process/connection snapshot."""

import socket
import time
from collections import Counter
from collections.abc import Callable
from pathlib import Path
from typing import Any
from uuid import uuid4

from hosttriage.collectors import build_collectors
from hosttriage.core import logging as log
from hosttriage.core.accumulator import FindingAccumulator
from hosttriage.core.config import TriageConfig
from hosttriage.core.errors import SourceUnavailableError, collector_failure
from hosttriage.core.logging import CollectorProgress
from hosttriage.core.runner import CollectionRunner
from hosttriage.export import create_run_directory, export_findings, export_records, run_stamp
from hosttriage.models.host import CONNECTION_FIELDS, PROCESS_FIELDS, ConnectionRecord, ProcessRecord
from hosttriage.models.run import RunSummary
from hosttriage.normalizer import Clock, FindingNormalizer, to_text
from hosttriage.sources.base import ProcessSource, SourceSet

ESTABLISHED = "ESTABLISHED"


def run_persistence(
    sources: SourceSet,
    config: TriageConfig,
    output_dir: Path | None = None,
    clock: Clock | None = None,
    hostname: str | None = None,
) -> RunSummary:
    """Collect persistence indicators and export them.

    The output directory is created before any collector runs; failing
    to create it is the only error that escapes this function.

    Args:
        sources: OS capabilities to query
        config: Run configuration (collector selection, workers, timeout)
        output_dir: Explicit run directory, or None for a timestamped one
        clock: Clock shared by the run directory name and all Findings
        hostname: Host name for the run directory and summary

    Returns:
        RunSummary for stdout

    Raises:
        OutputDirectoryError: If the run directory cannot be created
    """
    hostname = hostname or socket.gethostname()
    started_at = run_stamp(clock)
    run_dir = create_run_directory(output_dir, config.output_root, clock, hostname)
    log.info(f"Writing results to {run_dir}")

    normalizer = FindingNormalizer(clock)
    collectors = build_collectors(sources, config, normalizer, config.collectors)
    progress = CollectorProgress(total=len(collectors), description="Persistence scan")

    accumulator = FindingAccumulator()
    runner = CollectionRunner(
        collectors,
        max_workers=config.max_workers,
        timeout=config.collector_timeout,
        progress=progress,
    )
    outcomes = runner.run(accumulator)

    findings = accumulator.freeze()
    export = export_findings(findings, run_dir)

    by_category = Counter(f.category.value for f in findings)
    return RunSummary(
        run_id=uuid4(),
        command="persistence",
        hostname=hostname,
        started_at=started_at,
        completed_at=run_stamp(clock),
        output_dir=str(run_dir),
        total_records=len(findings),
        by_category=dict(sorted(by_category.items())),
        collectors=[outcome.to_dict() for outcome in outcomes],
        exports=[export],
    )


def collect_processes(source: ProcessSource, normalizer: FindingNormalizer) -> list[ProcessRecord]:
    """Snapshot the process table, ordered by PID."""
    stamp = normalizer.timestamp()
    records = [
        ProcessRecord(
            timestamp=stamp,
            pid=raw.pid,
            ppid=raw.ppid,
            name=to_text(raw.name),
            path=to_text(raw.path),
            command_line=to_text(raw.command_line),
            user=to_text(raw.user),
            started=to_text(raw.create_time),
        )
        for raw in source.iter_processes()
    ]
    return sorted(records, key=lambda p: p.pid)


def collect_connections(
    source: ProcessSource,
    processes: list[ProcessRecord],
    normalizer: FindingNormalizer,
    established_only: bool = True,
) -> list[ConnectionRecord]:
    """Snapshot sockets and attach the owning process by PID.

    The join is best effort: a PID missing from the process snapshot
    (exited, or not visible to the caller) leaves the process columns
    empty.
    """
    stamp = normalizer.timestamp()
    by_pid = {p.pid: p for p in processes}

    records = []
    for raw in source.iter_connections():
        if established_only and raw.state != ESTABLISHED:
            continue
        owner = by_pid.get(raw.pid) if raw.pid is not None else None
        records.append(
            ConnectionRecord(
                timestamp=stamp,
                local_address=raw.local_address,
                local_port=raw.local_port,
                remote_address=raw.remote_address,
                remote_port=raw.remote_port,
                state=raw.state,
                pid=raw.pid,
                process_name=owner.name if owner else "",
                process_path=owner.path if owner else "",
            )
        )
    return records


def _timed(name: str, step: Callable[[], list[Any]]) -> tuple[list[Any], dict[str, Any]]:
    """Run one snapshot step, converting failure into an empty result."""
    start = time.perf_counter()
    try:
        records = step()
    except Exception as e:
        error = collector_failure(name, e)
        log.warning(f"Snapshot step '{name}' failed: {error.message}", code=error.code)
        return [], {
            "collector": name,
            "status": "error",
            "findings": 0,
            "duration_ms": int((time.perf_counter() - start) * 1000),
            "error": error.model_dump(mode="json", exclude_none=True),
        }
    return records, {
        "collector": name,
        "status": "ok",
        "findings": len(records),
        "duration_ms": int((time.perf_counter() - start) * 1000),
    }


def run_snapshot(
    sources: SourceSet,
    config: TriageConfig,
    output_dir: Path | None = None,
    established_only: bool = True,
    clock: Clock | None = None,
    hostname: str | None = None,
) -> RunSummary:
    """Snapshot processes and network connections and export both.

    Writes ``processes.csv/json`` and ``connections.csv/json``.

    Raises:
        OutputDirectoryError: If the run directory cannot be created
    """
    hostname = hostname or socket.gethostname()
    started_at = run_stamp(clock)
    run_dir = create_run_directory(output_dir, config.output_root, clock, hostname)
    log.info(f"Writing results to {run_dir}")

    normalizer = FindingNormalizer(clock)
    source = sources.processes

    def _require() -> ProcessSource:
        if source is None:
            raise SourceUnavailableError("Process table", "no process source configured")
        return source

    processes, process_step = _timed("processes", lambda: collect_processes(_require(), normalizer))
    connections, connection_step = _timed(
        "connections",
        lambda: collect_connections(_require(), processes, normalizer, established_only),
    )

    exports = [
        export_records([p.to_row() for p in processes], PROCESS_FIELDS, run_dir, "processes"),
        export_records([c.to_row() for c in connections], CONNECTION_FIELDS, run_dir, "connections"),
    ]

    return RunSummary(
        run_id=uuid4(),
        command="snapshot",
        hostname=hostname,
        started_at=started_at,
        completed_at=run_stamp(clock),
        output_dir=str(run_dir),
        total_records=len(processes) + len(connections),
        by_category={"connections": len(connections), "processes": len(processes)},
        collectors=[process_step, connection_step],
        exports=exports,
    )
