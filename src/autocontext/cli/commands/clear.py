"""autocontext clear -- delete offloaded records."""

from __future__ import annotations

import click

from autocontext.cli.formatting import format_error


@click.command()
@click.argument("uuids", nargs=-1)
@click.option("--all", "clear_all", is_flag=True, help="Delete every record (requires --force).")
@click.option("--force", is_flag=True, help="Required for --all.")
@click.pass_context
def clear(ctx: click.Context, uuids: tuple[str, ...], clear_all: bool, force: bool) -> None:
    """Delete the records for UUIDS, or every record with --all --force."""
    from autocontext.cli import _offloader_session

    with _offloader_session(ctx) as (offloader, console):
        if clear_all:
            if not force:
                format_error("Clearing every record requires --force flag.", console)
                raise SystemExit(1)
            uuids = tuple(offloader.list_ids())
        elif not uuids:
            format_error("Give at least one UUID, or --all --force.", console)
            raise SystemExit(1)

        for uuid in uuids:
            offloader.clear(uuid)
        console.print(f"Cleared [yellow]{len(uuids)}[/yellow] record(s)")
