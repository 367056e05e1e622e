"""Message model for autocontext.

Defines the conversation message (Msg) and its three content block types
as frozen Pydantic models with a discriminated union (ContentBlock).
Compression never edits a Msg in place; it builds new ones.
"""

from __future__ import annotations

import enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class MsgRole(str, enum.Enum):
    """Author of a message."""

    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"
    SYSTEM = "system"


# ---------------------------------------------------------------------------
# Content blocks
# ---------------------------------------------------------------------------


class TextBlock(BaseModel):
    """Plain text."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str


class ToolUseBlock(BaseModel):
    """A tool invocation requested by the model."""

    model_config = ConfigDict(frozen=True)

    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: dict[str, Any] = Field(default_factory=dict)


class ToolResultBlock(BaseModel):
    """The result of a tool invocation. Shares ``id`` with its ToolUseBlock."""

    model_config = ConfigDict(frozen=True)

    type: Literal["tool_result"] = "tool_result"
    id: str
    name: str
    output: tuple[ContentBlock, ...] = ()

    @property
    def output_text(self) -> str:
        """Text blocks of the output joined with newlines."""
        return "\n".join(b.text for b in self.output if isinstance(b, TextBlock))


ContentBlock = Annotated[
    Union[TextBlock, ToolUseBlock, ToolResultBlock],
    Field(discriminator="type"),
]

ToolResultBlock.model_rebuild()


# ---------------------------------------------------------------------------
# Message
# ---------------------------------------------------------------------------


class Msg(BaseModel):
    """A single conversation message.

    Immutable once constructed. ``content`` keeps the order the blocks
    were produced in.
    """

    model_config = ConfigDict(frozen=True)

    role: MsgRole
    content: tuple[ContentBlock, ...] = ()
    name: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None

    @classmethod
    def from_text(
        cls,
        role: MsgRole | str,
        text: str,
        *,
        name: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Msg:
        """Build a message holding a single TextBlock."""
        return cls(
            role=MsgRole(role),
            content=(TextBlock(text=text),),
            name=name,
            metadata=metadata,
        )

    @property
    def text_content(self) -> str:
        """Text blocks joined with newlines. Tool blocks are not included."""
        return "\n".join(b.text for b in self.content if isinstance(b, TextBlock))

    def has_blocks(self, block_type: type[BaseModel]) -> bool:
        """Return True if any content block is an instance of *block_type*."""
        return any(isinstance(b, block_type) for b in self.content)

    def get_blocks(self, block_type: type[BaseModel]) -> list:
        """Return all content blocks that are instances of *block_type*."""
        return [b for b in self.content if isinstance(b, block_type)]


msg_list_adapter: TypeAdapter[list[Msg]] = TypeAdapter(list[Msg])
