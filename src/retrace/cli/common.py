from __future__ import annotations

import contextlib
from collections.abc import Generator

import click

from retrace.cli.context import CLIContext, ExitCode
from retrace.cli.output import format_error
from retrace.exceptions import (
    ConfigError,
    NotARepositoryError,
    ProcessError,
    RetraceError,
)
from retrace.git.client import GitClient
from retrace.logging import get_logger
from retrace.session.repository import SessionRepository
from retrace.session.workspace import WorkspaceStateStore

__all__ = [
    "cli_error_handler",
    "get_cli_context",
    "get_state_store",
    "open_session",
    "resolve_snapshot_id",
]


@contextlib.contextmanager
def cli_error_handler() -> Generator[None, None, None]:
    """Context manager for common CLI error handling.

    - KeyboardInterrupt: exit with code 130
    - ProcessError: show the failing git command and its stderr
    - ConfigError: show the offending field
    - RetraceError: show the message
    - anything else: log and show the message

    Example:
        >>> with cli_error_handler():
        >>>     asyncio.run(repo.save())
    """
    logger = get_logger(__name__)

    try:
        yield
    except KeyboardInterrupt:
        click.echo("\n\nInterrupted by user.", err=True)
        raise SystemExit(ExitCode.INTERRUPTED) from None
    except ProcessError as e:
        details = [f"Command: {' '.join(e.argv)}"] if e.argv else []
        if e.stderr.strip():
            details.append(e.stderr.strip())
        click.echo(format_error(e.message, details=details or None), err=True)
        raise SystemExit(ExitCode.FAILURE) from e
    except ConfigError as e:
        details = [f"Field: {e.field}"] if e.field else None
        click.echo(format_error(e.message, details=details), err=True)
        raise SystemExit(ExitCode.FAILURE) from e
    except RetraceError as e:
        click.echo(format_error(e.message), err=True)
        raise SystemExit(ExitCode.FAILURE) from e
    except (click.ClickException, click.Abort):
        raise
    except Exception as e:
        logger.exception("unexpected_command_error")
        click.echo(f"Error: {e!s}", err=True)
        raise SystemExit(ExitCode.FAILURE) from e


def get_cli_context(ctx: click.Context) -> CLIContext:
    cli_ctx: CLIContext = ctx.obj["cli_ctx"]
    return cli_ctx


def get_state_store(cli_ctx: CLIContext) -> WorkspaceStateStore:
    return WorkspaceStateStore(cli_ctx.config.session.state_file)


async def open_session(cli_ctx: CLIContext) -> SessionRepository:
    """Load the active session of the working directory.

    The current checkout is kept as is, so a session left browsing history
    resumes where it was.

    Raises:
        NotARepositoryError: If the directory has never been recorded.
        RetraceError: If no session was started for the directory.
    """
    working_dir = cli_ctx.working_dir
    client = GitClient(working_dir, executable=cli_ctx.config.git.executable)
    if not await client.is_initialized():
        raise NotARepositoryError(
            f"{working_dir} is not a recorded session", path=working_dir
        )

    state = get_state_store(cli_ctx).get(working_dir)
    if state.active_branch is None:
        raise RetraceError(
            f"No active session in {working_dir}; run 'retrace start <branch>'"
        )

    return await SessionRepository.open(
        working_dir,
        state.active_branch,
        checkout_existing=False,
        client=client,
        commit_message=cli_ctx.config.git.commit_message,
    )


def resolve_snapshot_id(repo: SessionRepository, prefix: str) -> str:
    """Expand an abbreviated snapshot id against the active timeline.

    Raises:
        click.BadParameter: If the prefix matches no snapshot or several.
    """
    matches = [i for i in repo.projection.ordered_ids if i.startswith(prefix)]
    if not matches:
        raise click.BadParameter(
            f"No snapshot {prefix!r} on timeline {repo.branch}", param_hint="ID"
        )
    if len(matches) > 1:
        raise click.BadParameter(
            f"Snapshot id {prefix!r} is ambiguous ({len(matches)} matches)",
            param_hint="ID",
        )
    return matches[0]
