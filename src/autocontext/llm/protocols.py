"""Chat model protocol.

Defines the pluggable interface the summarizer talks to.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from autocontext.llm.models import ChatResponse
    from autocontext.models.config import GenerateOptions
    from autocontext.models.message import Msg


@runtime_checkable
class ChatModel(Protocol):
    """Protocol for pluggable chat models.

    Any object with a ``stream()`` method matching this signature works.
    The built-in OpenAIChatModel implements this protocol.

    ``stream`` yields response chunks in order. Errors raised while
    opening or reading the stream propagate to the caller.
    """

    def stream(
        self,
        messages: Sequence[Msg],
        tools: Sequence[dict] | None = None,
        options: GenerateOptions | None = None,
    ) -> Iterator[ChatResponse]:
        """Send messages, yield streamed response chunks."""
        ...
