"""Timeline commands: branch, switch, revert, section, branches."""

from __future__ import annotations

import click

from retrace.cli.common import (
    cli_error_handler,
    get_cli_context,
    get_state_store,
    open_session,
    resolve_snapshot_id,
)
from retrace.cli.context import async_command
from retrace.cli.output import format_success


@click.command()
@click.argument("snapshot_id", metavar="ID")
@click.argument("name")
@click.pass_context
@async_command
async def branch(ctx: click.Context, snapshot_id: str, name: str) -> None:
    """Fork timeline NAME at snapshot ID and continue recording on it."""
    cli_ctx = get_cli_context(ctx)
    with cli_error_handler():
        repo = await open_session(cli_ctx)
        target = resolve_snapshot_id(repo, snapshot_id)
        try:
            await repo.branch_from(target, name)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="NAME") from e
        get_state_store(cli_ctx).update(cli_ctx.working_dir, active_branch=name)
        if not cli_ctx.quiet:
            click.echo(format_success(f"Recording on {name} from {target[:7]}"))


@click.command()
@click.argument("name")
@click.pass_context
@async_command
async def switch(ctx: click.Context, name: str) -> None:
    """Make the existing timeline NAME active."""
    cli_ctx = get_cli_context(ctx)
    with cli_error_handler():
        repo = await open_session(cli_ctx)
        if name not in await repo.branches():
            raise click.BadParameter(f"No timeline named {name!r}", param_hint="NAME")
        await repo.switch_branch(name)
        get_state_store(cli_ctx).update(cli_ctx.working_dir, active_branch=name)
        if not cli_ctx.quiet:
            click.echo(str(repo.progress()))


@click.command()
@click.argument("snapshot_id", metavar="ID")
@click.option("--yes", is_flag=True, default=False, help="Do not ask for confirmation.")
@click.pass_context
@async_command
async def revert(ctx: click.Context, snapshot_id: str, yes: bool) -> None:
    """Drop every snapshot after ID from the active timeline."""
    cli_ctx = get_cli_context(ctx)
    with cli_error_handler():
        repo = await open_session(cli_ctx)
        target = resolve_snapshot_id(repo, snapshot_id)
        dropped = len(repo.projection.ordered_ids) - repo.projection.index_of(target) - 1
        if dropped and not yes:
            click.confirm(
                f"Drop {dropped} snapshot{'s' if dropped != 1 else ''} "
                f"from {repo.branch}?",
                abort=True,
            )
        await repo.revert_to(target)
        if not cli_ctx.quiet:
            click.echo(format_success(f"{repo.branch} now ends at {target[:7]}"))


@click.command()
@click.argument("snapshot_id", metavar="ID")
@click.argument("label")
@click.pass_context
@async_command
async def section(ctx: click.Context, snapshot_id: str, label: str) -> None:
    """Start a section named LABEL at snapshot ID."""
    cli_ctx = get_cli_context(ctx)
    with cli_error_handler():
        repo = await open_session(cli_ctx)
        target = resolve_snapshot_id(repo, snapshot_id)
        try:
            annotation = await repo.create_annotation(target, label)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="LABEL") from e
        if not cli_ctx.quiet:
            count = repo.section_commit_count(target)
            click.echo(
                format_success(f"Section {annotation.name!r} covers {count} snapshots")
            )


@click.command()
@click.pass_context
@async_command
async def branches(ctx: click.Context) -> None:
    """List timelines; the active one is marked with ``*``."""
    cli_ctx = get_cli_context(ctx)
    with cli_error_handler():
        repo = await open_session(cli_ctx)
        for name in await repo.branches():
            marker = "*" if name == repo.branch else " "
            click.echo(f"{marker} {name}")
