"""History commands: log and ranges."""

from __future__ import annotations

import click
from rich.markup import escape
from rich.table import Table

from retrace.cli.common import (
    cli_error_handler,
    get_cli_context,
    get_state_store,
    open_session,
    resolve_snapshot_id,
)
from retrace.cli.console import console
from retrace.cli.context import async_command
from retrace.cli.output import OutputFormat, format_json, format_range, format_ranges
from retrace.git.parsing import render_commit_log
from retrace.session.entries import SectionEntry, entry_label, timeline_entries


@click.command()
@click.option(
    "--sections/--all",
    "sections",
    default=None,
    help="List only section starts (remembered per workspace).",
)
@click.option(
    "--raw",
    is_flag=True,
    default=False,
    help="Print the timeline in git's compact-summary log layout.",
)
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
async def log(ctx: click.Context, sections: bool | None, raw: bool, fmt: str) -> None:
    """List the snapshots of the active timeline, oldest first.

    Examples:
        retrace log
        retrace log --sections
        retrace log --format json
    """
    cli_ctx = get_cli_context(ctx)
    with cli_error_handler():
        repo = await open_session(cli_ctx)
        projection = repo.projection

        store = get_state_store(cli_ctx)
        if sections is None:
            sections = store.get(cli_ctx.working_dir).show_sections
        else:
            store.update(cli_ctx.working_dir, show_sections=sections)

        if raw:
            snapshots = [projection.snapshots[i] for i in projection.ordered_ids]
            click.echo(render_commit_log(snapshots), nl=False)
            return

        entries = timeline_entries(projection, sections_only=sections)

        if fmt == OutputFormat.JSON.value:
            click.echo(
                format_json(
                    [
                        {
                            "id": entry.snapshot.id,
                            "label": entry_label(entry, projection),
                            "section": isinstance(entry, SectionEntry),
                            "head": entry.snapshot.id == projection.head,
                            "timestamp": entry.snapshot.timestamp.isoformat(),
                        }
                        for entry in entries
                    ]
                )
            )
            return

        if not entries:
            click.echo("No snapshots yet")
            return

        table = Table(title=escape(str(projection.progress())), title_justify="left")
        table.add_column("", width=1)
        table.add_column("ID")
        table.add_column("Change")
        table.add_column("Time")
        for entry in entries:
            snapshot = entry.snapshot
            label = escape(entry_label(entry, projection))
            if isinstance(entry, SectionEntry):
                label = f"[bold]{label}[/bold]"
            table.add_row(
                "*" if snapshot.id == projection.head else "",
                snapshot.short_id,
                label,
                f"{snapshot.timestamp:%H:%M:%S}",
            )
        console.print(table)


@click.command()
@click.argument("snapshot_id", metavar="ID", required=False)
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
async def ranges(ctx: click.Context, snapshot_id: str | None, fmt: str) -> None:
    """Show the text ranges changed by snapshot ID (default: head)."""
    cli_ctx = get_cli_context(ctx)
    with cli_error_handler():
        repo = await open_session(cli_ctx)
        if snapshot_id is None:
            if repo.head is None:
                raise click.UsageError("No snapshots yet")
            target = repo.head
        else:
            target = resolve_snapshot_id(repo, snapshot_id)

        result = await repo.change_ranges(target)

        if fmt == OutputFormat.JSON.value:
            data = None
            if result is not None:
                data = {
                    "before": format_range(result.before),
                    "after": format_range(result.after),
                }
            click.echo(format_json(data))
            return
        click.echo(format_ranges(result))
