"""autocontext show -- print the messages behind an offload uuid."""

from __future__ import annotations

import click

from autocontext.cli.formatting import format_error, format_messages


@click.command()
@click.argument("uuid")
@click.option("--max-chars", type=int, default=None, help="Truncate each message to N characters.")
@click.pass_context
def show(ctx: click.Context, uuid: str, max_chars: int | None) -> None:
    """Show the messages offloaded under UUID."""
    from autocontext.cli import _offloader_session

    with _offloader_session(ctx) as (offloader, console):
        messages = offloader.reload(uuid)
        if not messages:
            format_error(f"No offloaded context for UUID {uuid}", console)
            raise SystemExit(1)
        format_messages(uuid, messages, console, max_chars=max_chars)
