"""CLI entry point for retrace.

This module defines the Click-based command-line interface.
"""

from __future__ import annotations

import logging
from pathlib import Path

import click
from dotenv import load_dotenv

from retrace.logging import configure_logging

# Load .env before anything reads RETRACE_* environment variables
load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

from retrace import __version__  # noqa: E402
from retrace.cli.commands import (  # noqa: E402
    branch,
    branches,
    log,
    next_,
    previous,
    ranges,
    replay,
    restore,
    revert,
    save,
    section,
    start,
    status,
    stop,
    switch,
)
from retrace.cli.context import CLIContext, ExitCode  # noqa: E402
from retrace.cli.output import format_error  # noqa: E402
from retrace.config import load_config  # noqa: E402
from retrace.exceptions import ConfigError  # noqa: E402

VERBOSITY_LEVELS = {
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="retrace")
@click.option(
    "-c",
    "--config",
    "config_file",
    type=click.Path(exists=False, path_type=str),
    default=None,
    help="Path to config file (overrides ./retrace.yaml).",
)
@click.option(
    "-C",
    "--directory",
    "directory",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Session root (default: current directory).",
)
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="Increase verbosity (-v for INFO, -vv for DEBUG).",
)
@click.option(
    "-q",
    "--quiet",
    is_flag=True,
    default=False,
    help="Suppress non-essential output (ERROR level only).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_file: str | None,
    directory: Path | None,
    verbose: int,
    quiet: bool,
) -> None:
    """retrace - record an editing session and step through it again."""
    ctx.ensure_object(dict)

    config_path = Path(config_file) if config_file else None
    try:
        config = load_config(config_path)
    except ConfigError as e:
        # Logging is not configured yet
        details = []
        if e.field:
            details.append(f"Field: {e.field}")
        if e.value is not None:
            details.append(f"Value: {e.value}")
        click.echo(format_error(e.message, details=details or None), err=True)
        ctx.exit(ExitCode.FAILURE)

    working_dir = (directory or Path.cwd()).resolve()
    ctx.obj["cli_ctx"] = CLIContext(
        config=config,
        working_dir=working_dir,
        config_path=config_path,
        verbosity=verbose,
        quiet=quiet,
    )

    # Priority: quiet > verbose > config
    if quiet:
        level = logging.ERROR
    elif verbose > 0:
        level = logging.INFO if verbose == 1 else logging.DEBUG
    else:
        level = VERBOSITY_LEVELS.get(config.verbosity, logging.WARNING)

    configure_logging(level=level)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


cli.add_command(start)
cli.add_command(stop)
cli.add_command(status)
cli.add_command(save)
cli.add_command(next_)
cli.add_command(previous)
cli.add_command(restore)
cli.add_command(replay)
cli.add_command(branch)
cli.add_command(switch)
cli.add_command(revert)
cli.add_command(section)
cli.add_command(branches)
cli.add_command(log)
cli.add_command(ranges)

if __name__ == "__main__":
    cli()
