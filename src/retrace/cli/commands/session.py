"""Session lifecycle commands: start, stop, status, save."""

from __future__ import annotations

import click

from retrace.cli.common import (
    cli_error_handler,
    get_cli_context,
    get_state_store,
    open_session,
)
from retrace.cli.console import console
from retrace.cli.context import async_command
from retrace.cli.output import OutputFormat, format_json, format_success
from retrace.git.client import GitClient
from retrace.session.repository import SessionRepository
from retrace.session.terminal import TerminalRecorder


@click.command()
@click.argument("branch")
@click.option(
    "--keep-checkout",
    is_flag=True,
    default=False,
    help="Do not check out BRANCH if it already exists.",
)
@click.pass_context
@async_command
async def start(ctx: click.Context, branch: str, keep_checkout: bool) -> None:
    """Start recording the working directory on BRANCH.

    Creates the repository and the branch when they do not exist yet.

    Examples:
        retrace start demo
        retrace -C ~/talks/demo start take-2 --keep-checkout
    """
    cli_ctx = get_cli_context(ctx)
    with cli_error_handler():
        checkout_existing = cli_ctx.config.session.checkout_existing and not (
            keep_checkout
        )
        repo = await SessionRepository.open(
            cli_ctx.working_dir,
            branch,
            checkout_existing=checkout_existing,
            client=GitClient(
                cli_ctx.working_dir, executable=cli_ctx.config.git.executable
            ),
            commit_message=cli_ctx.config.git.commit_message,
        )
        get_state_store(cli_ctx).update(cli_ctx.working_dir, active_branch=branch)
        if not cli_ctx.quiet:
            count = len(repo.projection.ordered_ids)
            click.echo(format_success(f"Recording on {branch} ({count} snapshots)"))


@click.command()
@click.pass_context
def stop(ctx: click.Context) -> None:
    """Stop the session of the working directory.

    The recorded history is kept; ``retrace start`` resumes it.
    """
    cli_ctx = get_cli_context(ctx)
    with cli_error_handler():
        get_state_store(cli_ctx).clear(cli_ctx.working_dir)
        if not cli_ctx.quiet:
            click.echo(format_success("Session stopped"))


@click.command()
@click.option(
    "-f",
    "--format",
    "fmt",
    type=click.Choice([f.value for f in OutputFormat]),
    default=OutputFormat.TEXT.value,
    help="Output format.",
)
@click.pass_context
@async_command
async def status(ctx: click.Context, fmt: str) -> None:
    """Show where the session is within its timeline."""
    cli_ctx = get_cli_context(ctx)
    with cli_error_handler():
        repo = await open_session(cli_ctx)
        projection = repo.projection
        progress = projection.progress()

        if fmt == OutputFormat.JSON.value:
            click.echo(
                format_json(
                    {
                        "branch": progress.branch,
                        "head": projection.head,
                        "branch_head": projection.branch_head,
                        "snapshots": len(projection.ordered_ids),
                        "section": progress.section_label,
                        "step": progress.step,
                        "step_count": progress.step_count,
                        "detached": projection.is_detached,
                        "modified": projection.working_dir_modified,
                    }
                )
            )
            return

        console.print(str(progress), markup=False, highlight=False)
        head_index = projection.head_index
        if head_index is None:
            console.print("No snapshots yet")
        else:
            console.print(
                f"Snapshot {head_index + 1} of {len(projection.ordered_ids)}"
                + (" (browsing history)" if projection.is_detached else "")
            )
        if projection.working_dir_modified:
            console.print("[yellow]Working directory has unsaved changes[/yellow]")


@click.command()
@click.option(
    "-t",
    "--terminal",
    "terminal_output",
    default=None,
    help="Terminal output to store with the snapshot.",
)
@click.pass_context
@async_command
async def save(ctx: click.Context, terminal_output: str | None) -> None:
    """Record the working directory as a new snapshot.

    Nothing is recorded while browsing history or when nothing changed.
    """
    cli_ctx = get_cli_context(ctx)
    with cli_error_handler():
        repo = await open_session(cli_ctx)

        before_save = None
        if terminal_output is not None:
            recorder = TerminalRecorder(
                cli_ctx.working_dir, cli_ctx.config.session.terminal_file
            )
            recorder.append(terminal_output)
            before_save = recorder.flush

        saved = await repo.save(before_save)
        if cli_ctx.quiet:
            return
        if saved:
            snapshot = repo.head_snapshot()
            assert snapshot is not None
            click.echo(format_success(f"Saved {snapshot.short_id}"))
        elif repo.projection.is_detached:
            click.echo("Browsing history; nothing saved")
        else:
            click.echo("Nothing to save")
