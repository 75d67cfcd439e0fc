"""Process and network connection snapshot command."""

from pathlib import Path

import click

from hosttriage.cli.output import output
from hosttriage.cli.persistence import get_sources
from hosttriage.core.config import TriageConfig
from hosttriage.core.errors import EXIT_OUTPUT_DIR, OutputDirectoryError, handle_error
from hosttriage.core.triage import run_snapshot


@click.command()
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Run directory (default: <output_root>/<host>_<timestamp>)",
)
@click.option(
    "--all-connections",
    is_flag=True,
    default=False,
    help="Include listening and closing sockets, not only established ones",
)
@click.pass_context
def snapshot(ctx: click.Context, output_dir: Path | None, all_connections: bool) -> None:
    """Snapshot running processes and network connections.

    Connections are joined to their owning process by PID. Writes
    processes.csv/json and connections.csv/json.
    """
    config: TriageConfig = ctx.obj["config"]

    try:
        summary = run_snapshot(
            get_sources(ctx),
            config,
            output_dir=output_dir,
            established_only=not all_connections,
        )
    except OutputDirectoryError as e:
        handle_error(e, exit_code=EXIT_OUTPUT_DIR)

    output(summary)
