"""Writers for the tabular (CSV) and structured (JSON) exports.

Both files of a pair are rendered from the same list of row dicts, so
their record count, order and field values always agree.
"""

import csv
import hashlib
import json
import socket
from collections.abc import Iterable, Sequence
from datetime import UTC
from pathlib import Path
from typing import Any

from hosttriage.core import logging as log
from hosttriage.core.errors import OutputDirectoryError
from hosttriage.models.finding import FINDING_FIELDS, Finding
from hosttriage.models.run import ExportedFile, ExportResult
from hosttriage.normalizer import Clock, utc_now

PERSISTENCE_BASENAME = "persistence"


def sort_findings(findings: Iterable[Finding]) -> list[Finding]:
    """Order findings by (Category, Location, Name).

    ``sorted`` is stable, so findings with equal keys keep their
    insertion order.
    """
    return sorted(findings, key=Finding.sort_key)


def create_run_directory(
    output_dir: Path | None,
    output_root: Path,
    clock: Clock | None = None,
    hostname: str | None = None,
) -> Path:
    """Create the directory a run writes into.

    Args:
        output_dir: Caller-supplied directory (used as-is when given)
        output_root: Parent for the default ``<host>_<YYYYMMDD_HHMMSS>`` name
        clock: Clock for the default name
        hostname: Host name for the default name

    Returns:
        Path to the created directory

    Raises:
        OutputDirectoryError: If the directory cannot be created
    """
    if output_dir is None:
        now = (clock or utc_now)()
        host = hostname or socket.gethostname() or "host"
        output_dir = output_root / f"{host}_{now.strftime('%Y%m%d_%H%M%S')}"

    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputDirectoryError(str(output_dir), e.strerror or str(e))

    if not output_dir.is_dir():
        raise OutputDirectoryError(str(output_dir), "not a directory")

    return output_dir


def _hash_file(path: Path) -> str:
    sha256_hash = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            sha256_hash.update(chunk)
    return sha256_hash.hexdigest()


def _exported(path: Path, format: str, records: int) -> ExportedFile:
    return ExportedFile(
        path=str(path),
        format=format,
        records=records,
        size_bytes=path.stat().st_size,
        sha256=_hash_file(path),
    )


def write_csv(rows: Sequence[dict[str, Any]], fields: Sequence[str], path: Path) -> ExportedFile:
    """Write rows as CSV with a header row.

    Fields containing the delimiter, quotes or newlines are quoted, so
    re-reading the file reproduces every value exactly.
    """
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=list(fields), quoting=csv.QUOTE_MINIMAL)
        writer.writeheader()
        for row in rows:
            writer.writerow({k: ("" if row.get(k) is None else row.get(k)) for k in fields})
    return _exported(path, "csv", len(rows))


def write_json(rows: Sequence[dict[str, Any]], fields: Sequence[str], path: Path) -> ExportedFile:
    """Write rows as an indented JSON array of objects."""
    ordered = [{k: row.get(k) for k in fields} for row in rows]
    with open(path, "w", encoding="utf-8") as f:
        json.dump(ordered, f, indent=2, ensure_ascii=False)
        f.write("\n")
    return _exported(path, "json", len(rows))


def export_records(
    rows: Sequence[dict[str, Any]],
    fields: Sequence[str],
    output_dir: Path,
    basename: str,
) -> ExportResult:
    """Write ``<basename>.csv`` and ``<basename>.json`` from the same rows."""
    csv_file = write_csv(rows, fields, output_dir / f"{basename}.csv")
    json_file = write_json(rows, fields, output_dir / f"{basename}.json")
    log.debug(f"Exported {len(rows)} {basename} records", output_dir=str(output_dir))
    return ExportResult(
        output_dir=str(output_dir),
        records=len(rows),
        files=[csv_file, json_file],
    )


def export_findings(findings: Iterable[Finding], output_dir: Path) -> ExportResult:
    """Sort findings and write ``persistence.csv`` and ``persistence.json``.

    Args:
        findings: Frozen accumulator contents
        output_dir: Existing run directory

    Returns:
        ExportResult describing both files
    """
    rows = [finding.to_row() for finding in sort_findings(findings)]
    return export_records(rows, FINDING_FIELDS, output_dir, PERSISTENCE_BASENAME)


def run_stamp(clock: Clock | None = None) -> str:
    """ISO-8601 timestamp for run summaries."""
    now = (clock or utc_now)()
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return now.astimezone(UTC).isoformat()
