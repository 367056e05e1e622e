"""autocontext CLI -- inspect and clear offloaded context records.

This module is NEVER imported from autocontext/__init__.py.
It is only loaded via the ``autocontext`` entry point defined in pyproject.toml.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING

try:
    import click
except ImportError:
    raise ImportError(
        "CLI dependencies not installed. Install with: pip install tract-autocontext[cli]"
    ) from None

from autocontext.cli.formatting import format_error, get_console

if TYPE_CHECKING:
    from collections.abc import Iterator

    from rich.console import Console

    from autocontext.storage.repositories import ContextOffLoader

DEFAULT_OFFLOAD_DIR = ".autocontext/offload"


@click.group()
@click.option(
    "--offload-dir",
    default=DEFAULT_OFFLOAD_DIR,
    envvar="AUTOCONTEXT_OFFLOAD_DIR",
    help="Directory of a local-file off-loader.",
)
@click.option(
    "--db-url",
    default=None,
    envvar="AUTOCONTEXT_DB_URL",
    help="SQLAlchemy URL or SQLite path of a SQL off-loader (overrides --offload-dir).",
)
@click.option(
    "--session-id",
    default=None,
    envvar="AUTOCONTEXT_SESSION_ID",
    help="Session whose records to use.",
)
@click.pass_context
def cli(
    ctx: click.Context, offload_dir: str, db_url: str | None, session_id: str | None
) -> None:
    """autocontext: inspect context offloaded by automatic compression."""
    ctx.ensure_object(dict)
    ctx.obj["offload_dir"] = offload_dir
    ctx.obj["db_url"] = db_url
    ctx.obj["session_id"] = session_id


def _get_offloader(ctx: click.Context) -> ContextOffLoader:
    """Build the off-loader selected by the group options."""
    session_id = ctx.obj["session_id"]
    db_url = ctx.obj["db_url"]
    if db_url:
        from autocontext.storage.sql import SqlContextOffLoader

        return SqlContextOffLoader(db_url, session_id=session_id)

    from autocontext.storage.offload import LocalFileContextOffLoader

    return LocalFileContextOffLoader(ctx.obj["offload_dir"], session_id=session_id)


@contextmanager
def _offloader_session(ctx: click.Context) -> Iterator[tuple[ContextOffLoader, Console]]:
    """Yield (offloader, console) and format any failure as a CLI error."""
    console = get_console()
    try:
        yield _get_offloader(ctx), console
    except SystemExit:
        raise
    except Exception as e:
        format_error(str(e), console)
        raise SystemExit(1) from None


# Register subcommands after cli group is defined
from autocontext.cli.commands.clear import clear  # noqa: E402
from autocontext.cli.commands.list import list_records  # noqa: E402
from autocontext.cli.commands.show import show  # noqa: E402

cli.add_command(list_records)
cli.add_command(show)
cli.add_command(clear)
