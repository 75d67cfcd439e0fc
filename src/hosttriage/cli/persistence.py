"""Persistence scan CLI commands."""

from pathlib import Path

import click

from hosttriage.cli.output import output
from hosttriage.collectors import CollectorRegistry
from hosttriage.core.config import TriageConfig
from hosttriage.core.errors import EXIT_OUTPUT_DIR, OutputDirectoryError, handle_error
from hosttriage.core.triage import run_persistence
from hosttriage.sources.base import SourceSet


def get_sources(ctx: click.Context) -> SourceSet:
    """Sources injected into the context, or the live host's."""
    sources = ctx.obj.get("sources")
    if sources is None:
        from hosttriage.sources.windows import live_sources

        sources = live_sources()
    return sources


@click.command()
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Run directory (default: <output_root>/<host>_<timestamp>)",
)
@click.option(
    "--only",
    "collectors",
    multiple=True,
    type=click.Choice(CollectorRegistry.names()),
    help="Run only this collector (repeatable)",
)
@click.option(
    "--workers",
    "-w",
    type=click.IntRange(1, 32),
    default=None,
    help="Collectors to run concurrently (1 = sequential)",
)
@click.option(
    "--timeout",
    "-t",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Seconds before a collector is reported as timed out",
)
@click.pass_context
def persistence(
    ctx: click.Context,
    output_dir: Path | None,
    collectors: tuple[str, ...],
    workers: int | None,
    timeout: float | None,
) -> None:
    """Collect autorun and persistence indicators.

    Writes persistence.csv and persistence.json to the run directory and
    prints a run summary. Collector failures are recorded as ERROR/INFO
    rows and do not change the exit code.
    """
    config: TriageConfig = ctx.obj["config"]
    config = config.merged(
        max_workers=workers,
        collector_timeout=timeout,
        collectors=list(collectors) or None,
    )

    try:
        summary = run_persistence(get_sources(ctx), config, output_dir=output_dir)
    except OutputDirectoryError as e:
        handle_error(e, exit_code=EXIT_OUTPUT_DIR)

    output(summary)


@click.command("collectors")
def list_collectors() -> None:
    """List available persistence collectors."""
    rows = [
        {
            "name": collector.name,
            "category": collector.category.value,
            "description": collector.description,
        }
        for collector in CollectorRegistry.all()
    ]
    output(rows)
