"""Rich formatting helpers for the autocontext CLI.

Output goes to stdout; when piped, Rich drops colors and keeps the text.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from autocontext.engine.messages import flatten_text
from autocontext.engine.tokens import estimate_tokens
from autocontext.prompts.compress import extract_offload_uuids

if TYPE_CHECKING:
    from autocontext.models.message import Msg

_ROLE_STYLES = {
    "user": "green",
    "assistant": "cyan",
    "tool": "magenta",
    "system": "yellow",
}


def get_console() -> Console:
    """Console for one command invocation."""
    return Console(stderr=False)


def format_record_table(records: list[tuple[str, list[Msg]]], console: Console) -> None:
    """Display offload records as a table: uuid, message count, token estimate."""
    if not records:
        console.print("[dim]No offloaded records.[/dim]")
        return

    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("UUID", style="yellow")
    table.add_column("Messages", justify="right")
    table.add_column("Tokens", justify="right", style="green")
    table.add_column("Roles", style="dim")

    for uuid, messages in records:
        roles = ",".join(sorted({m.role.value for m in messages}))
        table.add_row(
            uuid,
            str(len(messages)),
            str(estimate_tokens(messages)),
            roles,
        )

    console.print(table)


def format_messages(
    uuid: str, messages: list[Msg], console: Console, *, max_chars: int | None = None
) -> None:
    """Display every message of a record in its own panel."""
    if not messages:
        console.print(f"[dim]No offloaded context for {escape(uuid)}.[/dim]")
        return

    console.print(f"[bold]{escape(uuid)}[/bold]: {len(messages)} message(s)")
    for i, msg in enumerate(messages):
        text = flatten_text(msg)
        if max_chars is not None and len(text) > max_chars:
            text = text[:max_chars] + "..."
        role = msg.role.value
        title = f"[{i}] {role}" + (f" ({msg.name})" if msg.name else "")
        console.print(
            Panel(
                escape(text),
                title=escape(title),
                title_align="left",
                border_style=_ROLE_STYLES.get(role, "white"),
            )
        )

    nested = [u for m in messages for u in extract_offload_uuids(flatten_text(m))]
    if nested:
        console.print(f"[dim]References offloaded records: {', '.join(nested)}[/dim]")


def format_error(message: str, console: Console) -> None:
    """Print *message* as a CLI error. Callers decide the exit code."""
    console.print(f"[red]Error:[/red] {message}", highlight=False)
