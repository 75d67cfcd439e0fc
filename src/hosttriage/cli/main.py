"""hosttriage CLI entry point and global options."""

import sys
from pathlib import Path
from typing import Literal

import click

from hosttriage import __version__
from hosttriage.cli.output import OutputFormat, set_output_format
from hosttriage.cli.persistence import list_collectors, persistence
from hosttriage.cli.snapshot import snapshot
from hosttriage.core.config import load_config
from hosttriage.core.errors import EXIT_ERROR, ConfigError, handle_error
from hosttriage.core.logging import configure_logging


@click.group()
@click.option(
    "--format",
    "-f",
    type=click.Choice(["json", "human"]),
    default="json",
    help="Summary format on stdout (default: json)",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable verbose logging to stderr",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    default=False,
    help="Suppress progress output",
)
@click.option(
    "--log-format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Log format for stderr (default: text)",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="YAML configuration file",
)
@click.version_option(version=__version__, prog_name="hosttriage")
@click.pass_context
def cli(
    ctx: click.Context,
    format: OutputFormat,
    verbose: bool,
    quiet: bool,
    log_format: Literal["text", "json"],
    config_path: Path | None,
) -> None:
    """hosttriage: read-only incident-response triage for Windows hosts.

    Enumerates autorun/persistence mechanisms, running processes and
    network connections, and exports them as CSV and JSON for offline
    review.
    """
    set_output_format(format)
    configure_logging(log_format=log_format, quiet=quiet, verbose=verbose)

    try:
        config = load_config(config_path)
    except ConfigError as e:
        handle_error(e, exit_code=EXIT_ERROR)

    # Tests inject fake sources through obj; keep them
    ctx.ensure_object(dict)
    ctx.obj.update(
        {
            "format": format,
            "verbose": verbose,
            "quiet": quiet,
            "log_format": log_format,
            "config": config,
        }
    )


# Register commands
cli.add_command(persistence)
cli.add_command(snapshot)
cli.add_command(list_collectors)


def main() -> None:
    """Main entry point."""
    try:
        cli()
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(EXIT_ERROR)


if __name__ == "__main__":
    main()
