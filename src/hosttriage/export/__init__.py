"""Export of collected records to CSV and JSON."""

from hosttriage.export.writer import (
    PERSISTENCE_BASENAME,
    create_run_directory,
    export_findings,
    export_records,
    run_stamp,
    sort_findings,
)

__all__ = [
    "PERSISTENCE_BASENAME",
    "create_run_directory",
    "export_findings",
    "export_records",
    "run_stamp",
    "sort_findings",
]
