"""Streaming response models.

A chat model yields ChatResponse chunks; ResponseAccumulator folds them
into one final assistant Msg.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict

from autocontext.models.message import ContentBlock, Msg, MsgRole, TextBlock


class ChatUsage(BaseModel):
    """Token usage reported by the provider."""

    model_config = ConfigDict(frozen=True)

    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class ChatResponse(BaseModel):
    """One streamed chunk. ``content`` holds the incremental blocks."""

    model_config = ConfigDict(frozen=True)

    id: str = ""
    content: tuple[ContentBlock, ...] = ()
    usage: Optional[ChatUsage] = None


class ResponseAccumulator:
    """Collects streamed chunks into a final message.

    Text deltas are concatenated in arrival order. The last reported
    usage wins, since providers report cumulative usage on the final chunk.
    """

    def __init__(self, name: str = "assistant") -> None:
        self._name = name
        self._text_parts: list[str] = []
        self._usage: ChatUsage | None = None
        self._chunks = 0

    @property
    def usage(self) -> ChatUsage | None:
        return self._usage

    @property
    def chunk_count(self) -> int:
        return self._chunks

    def process_chunk(self, chunk: ChatResponse) -> None:
        self._chunks += 1
        for block in chunk.content:
            if isinstance(block, TextBlock):
                self._text_parts.append(block.text)
        if chunk.usage is not None:
            self._usage = chunk.usage

    @property
    def text(self) -> str:
        return "".join(self._text_parts)

    def build_final_message(self) -> Msg:
        """Return the assistant message for everything seen so far."""
        metadata = {"usage": self._usage.model_dump()} if self._usage else None
        return Msg(
            role=MsgRole.ASSISTANT,
            name=self._name,
            content=(TextBlock(text=self.text),),
            metadata=metadata,
        )
