"""Agent toolkit: the context_reload tool for compressed conversations."""

from autocontext.toolkit.definitions import RELOAD_TOOL_NAME, get_all_tools, get_reload_tool
from autocontext.toolkit.executor import ToolExecutor
from autocontext.toolkit.models import ToolDefinition, ToolResult

__all__ = [
    "RELOAD_TOOL_NAME",
    "ToolDefinition",
    "ToolExecutor",
    "ToolResult",
    "get_all_tools",
    "get_reload_tool",
]
