"""Navigation commands: next, previous, restore, replay."""

from __future__ import annotations

import click

from retrace.cli.common import (
    cli_error_handler,
    get_cli_context,
    open_session,
    resolve_snapshot_id,
)
from retrace.cli.context import CLIContext, async_command
from retrace.cli.output import format_range
from retrace.session.navigation import StepPlan, plan_next, plan_previous
from retrace.session.replay import Replayer
from retrace.session.repository import SessionRepository
from retrace.session.terminal import TerminalRecorder


def _report(cli_ctx: CLIContext, repo: SessionRepository, plan: StepPlan) -> None:
    if cli_ctx.quiet:
        return
    click.echo(str(repo.progress()))
    if plan.file_name is not None:
        line = plan.file_name
        if plan.to_range is not None:
            line += f" {format_range(plan.to_range)}"
        click.echo(line)
    terminal = TerminalRecorder(
        cli_ctx.working_dir, cli_ctx.config.session.terminal_file
    ).read()
    if terminal and cli_ctx.verbosity > 0:
        click.echo(terminal, nl=False)


@click.command(name="next")
@click.pass_context
@async_command
async def next_(ctx: click.Context) -> None:
    """Restore the snapshot after the current one."""
    cli_ctx = get_cli_context(ctx)
    with cli_error_handler():
        repo = await open_session(cli_ctx)
        plan = await plan_next(repo, cli_ctx.config.session.terminal_file)
        if plan is None or not await repo.next():
            click.echo("Already at the last snapshot")
            return
        _report(cli_ctx, repo, plan)


@click.command()
@click.pass_context
@async_command
async def previous(ctx: click.Context) -> None:
    """Restore the snapshot before the current one."""
    cli_ctx = get_cli_context(ctx)
    with cli_error_handler():
        repo = await open_session(cli_ctx)
        plan = await plan_previous(repo, cli_ctx.config.session.terminal_file)
        if plan is None or not await repo.previous():
            click.echo("Already at the first snapshot")
            return
        _report(cli_ctx, repo, plan)


@click.command()
@click.argument("snapshot_id", metavar="ID")
@click.pass_context
@async_command
async def restore(ctx: click.Context, snapshot_id: str) -> None:
    """Make the working directory match snapshot ID.

    Uncommitted edits are discarded.
    """
    cli_ctx = get_cli_context(ctx)
    with cli_error_handler():
        repo = await open_session(cli_ctx)
        target = resolve_snapshot_id(repo, snapshot_id)
        await repo.restore(target)
        if not cli_ctx.quiet:
            click.echo(str(repo.progress()))


@click.command()
@click.option(
    "-d",
    "--delay",
    type=float,
    default=None,
    help="Seconds between steps (default: replay.step_delay).",
)
@click.option("--until", "until", default=None, help="Stop at this snapshot id.")
@click.pass_context
@async_command
async def replay(ctx: click.Context, delay: float | None, until: str | None) -> None:
    """Step forward through the timeline until its end.

    Press Ctrl-C to stop; steps already taken stay applied.
    """
    cli_ctx = get_cli_context(ctx)
    with cli_error_handler():
        repo = await open_session(cli_ctx)
        target = resolve_snapshot_id(repo, until) if until is not None else None
        step_delay = cli_ctx.config.replay.step_delay if delay is None else delay
        replayer = Replayer(repo, step_delay)

        if not cli_ctx.quiet:
            repo.subscribe(lambda projection, _: click.echo(str(projection.progress())))

        steps = await replayer.run(until=target)
        if not cli_ctx.quiet:
            click.echo(f"Replayed {steps} step{'s' if steps != 1 else ''}")
