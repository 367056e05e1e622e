"""Protocol definitions for autocontext.

Defines the pluggable TokenCounter interface. Storage contracts live in
autocontext.storage.repositories; the chat model contract lives in
autocontext.llm.protocols.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from autocontext.models.message import Msg


@runtime_checkable
class TokenCounter(Protocol):
    """Protocol for token counting.

    Used only for threshold comparison, never for billing.
    """

    def count_text(self, text: str) -> int:
        """Count tokens in a plain text string."""
        ...

    def count_messages(self, messages: Sequence[Msg]) -> int:
        """Count tokens in a message list, including per-message overhead."""
        ...
