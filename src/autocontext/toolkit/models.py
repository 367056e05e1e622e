"""Tool definitions and results exchanged with an agent.

A ToolDefinition is what the model is offered; a ToolResult is what the
executor hands back, and it converts into a tool-result ``Msg`` so the
answer can go straight into an AutoContextMemory.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from autocontext.models.message import Msg, MsgRole, TextBlock, ToolResultBlock

if TYPE_CHECKING:
    from collections.abc import Callable


@dataclass(frozen=True)
class ToolDefinition:
    """A tool offered to the model.

    Attributes:
        name: Tool name, e.g. ``"context_reload"``.
        description: When the model should call it.
        parameters: JSON Schema of the keyword arguments.
        handler: Called with the arguments as keywords; returns text.
    """

    name: str
    description: str
    parameters: dict
    handler: Callable[..., object]

    @property
    def required(self) -> tuple[str, ...]:
        return tuple(self.parameters.get("required", ()))

    def missing_arguments(self, arguments: dict) -> list[str]:
        """Required parameter names absent from *arguments*."""
        return [name for name in self.required if name not in arguments]

    def to_openai(self) -> dict:
        """OpenAI function-calling schema."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }

    def to_anthropic(self) -> dict:
        """Anthropic tool-use schema."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.parameters,
        }


@dataclass(frozen=True)
class ToolResult:
    """Outcome of one tool call.

    ``output`` is set on success and ``error`` on failure; the other
    stays empty.
    """

    tool_name: str
    success: bool
    output: str = ""
    error: str = ""

    @property
    def text(self) -> str:
        return self.output if self.success else f"Error: {self.error}"

    def to_message(self, call_id: str) -> Msg:
        """Tool-result message answering the tool call *call_id*."""
        return Msg(
            role=MsgRole.TOOL,
            name=self.tool_name,
            content=(
                ToolResultBlock(
                    id=call_id,
                    name=self.tool_name,
                    output=(TextBlock(text=self.text),),
                ),
            ),
        )
