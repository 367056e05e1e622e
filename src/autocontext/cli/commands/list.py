"""autocontext list -- list offloaded records."""

from __future__ import annotations

import click

from autocontext.cli.formatting import format_record_table


@click.command("list")
@click.pass_context
def list_records(ctx: click.Context) -> None:
    """List offloaded records with their message counts."""
    from autocontext.cli import _offloader_session

    with _offloader_session(ctx) as (offloader, console):
        records = [(uuid, offloader.reload(uuid)) for uuid in offloader.list_ids()]
        format_record_table(records, console)
