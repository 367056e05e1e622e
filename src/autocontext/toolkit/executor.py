"""ToolExecutor: runs the toolkit's tools for an agent loop."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from autocontext.toolkit.definitions import get_all_tools
from autocontext.toolkit.models import ToolResult

if TYPE_CHECKING:
    from autocontext.memory import AutoContextMemory
    from autocontext.models.message import Msg, ToolUseBlock
    from autocontext.toolkit.models import ToolDefinition

logger = logging.getLogger(__name__)


class ToolExecutor:
    """Dispatches tool calls against one memory.

    Failures never raise: an unknown tool, a missing argument or a
    handler error comes back as a failed ToolResult, which the agent
    sees as the tool's answer.

    Usage::

        executor = ToolExecutor(memory)
        for block in reply.get_blocks(ToolUseBlock):
            memory.add_message(executor.answer(block))
    """

    def __init__(self, memory: AutoContextMemory) -> None:
        self._tools: dict[str, ToolDefinition] = {
            tool.name: tool for tool in get_all_tools(memory)
        }

    def execute(self, tool_name: str, arguments: dict) -> ToolResult:
        tool = self._tools.get(tool_name)
        if tool is None:
            return ToolResult(tool_name, success=False, error=f"Unknown tool: {tool_name}")

        missing = tool.missing_arguments(arguments)
        if missing:
            return ToolResult(
                tool_name,
                success=False,
                error=f"Missing required argument(s): {', '.join(missing)}",
            )

        try:
            output = tool.handler(**arguments)
        except Exception as exc:
            logger.debug("tool %s failed: %s", tool_name, exc, exc_info=True)
            return ToolResult(tool_name, success=False, error=f"{type(exc).__name__}: {exc}")
        return ToolResult(tool_name, success=True, output=str(output))

    def answer(self, call: ToolUseBlock) -> Msg:
        """Run a tool-use block and return the tool-result message for it."""
        return self.execute(call.name, dict(call.input)).to_message(call.id)

    def available_tools(self) -> list[str]:
        return list(self._tools)

    def get_tools(self) -> list[ToolDefinition]:
        return list(self._tools.values())
