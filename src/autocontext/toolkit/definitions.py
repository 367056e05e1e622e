"""Tool definitions bound to an AutoContextMemory.

The hint text left behind by every compression names the
``context_reload`` tool and an offload uuid. These definitions give an
agent that tool. Handler lambdas whitelist their parameters so a
hallucinated argument fails instead of passing through.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from autocontext.engine.messages import flatten_text
from autocontext.toolkit.models import ToolDefinition

if TYPE_CHECKING:
    from autocontext.memory import AutoContextMemory
    from autocontext.models.message import Msg

logger = logging.getLogger(__name__)

RELOAD_TOOL_NAME = "context_reload"


def get_reload_tool(memory: AutoContextMemory) -> ToolDefinition:
    """Build the ``context_reload`` tool for *memory*."""
    return ToolDefinition(
        name=RELOAD_TOOL_NAME,
        description=(
            "Restore context that was compressed or offloaded from the "
            "conversation. Call this with the UUID shown in a "
            "working_context_offload_uuid hint when you need the original "
            "messages, tool calls or results behind a summary or preview."
        ),
        parameters={
            "type": "object",
            "properties": {
                "uuid": {
                    "type": "string",
                    "description": "The offload UUID from the hint text.",
                },
            },
            "required": ["uuid"],
        },
        handler=lambda uuid: _handle_reload(memory, uuid),
    )


def get_all_tools(memory: AutoContextMemory) -> list[ToolDefinition]:
    """All tool definitions for *memory*. Each call returns fresh handlers."""
    return [get_reload_tool(memory)]


def format_reloaded(messages: list[Msg]) -> str:
    """Render reloaded messages one block per message."""
    lines = []
    for i, msg in enumerate(messages):
        author = f"{msg.role.value}:{msg.name}" if msg.name else msg.role.value
        lines.append(f"[{i}] {author}\n{flatten_text(msg)}")
    return "\n\n".join(lines)


def _handle_reload(memory: AutoContextMemory, uuid: str) -> str:
    messages = memory.reload(uuid)
    if not messages:
        logger.debug("context_reload found nothing for uuid %s", uuid)
        return f"No offloaded context found for UUID {uuid}."
    logger.info("context_reload restored %d message(s) for uuid %s", len(messages), uuid)
    return f"Reloaded {len(messages)} message(s) for UUID {uuid}:\n\n{format_reloaded(messages)}"
