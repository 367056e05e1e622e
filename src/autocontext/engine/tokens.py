"""Token counting implementations for autocontext.

Provides CharTokenCounter (default, dependency-free estimate),
TiktokenCounter (tokenizer-accurate) and NullTokenCounter (testing).
All implement the TokenCounter protocol from protocols.py.
"""

from __future__ import annotations

import functools
import json
from typing import TYPE_CHECKING

from autocontext.models.message import TextBlock, ToolResultBlock, ToolUseBlock

if TYPE_CHECKING:
    from collections.abc import Sequence

    from autocontext.models.message import ContentBlock, Msg

# BPE tokenizers average ~3.5-4 chars per token for English text.
DEFAULT_CHARS_PER_TOKEN = 4.0

# Per-message framing overhead (role marker, separators).
_MESSAGE_OVERHEAD_CHARS = 4


def block_text(block: ContentBlock) -> str:
    """Render a content block as the text a tokenizer would see."""
    if isinstance(block, TextBlock):
        return block.text
    if isinstance(block, ToolUseBlock):
        return block.name + json.dumps(block.input, ensure_ascii=False, sort_keys=True, default=str)
    if isinstance(block, ToolResultBlock):
        return block.name + "".join(block_text(b) for b in block.output)
    return ""


def _message_chars(message: Msg) -> int:
    total = len(message.role.value) + _MESSAGE_OVERHEAD_CHARS
    if message.name:
        total += len(message.name)
    for block in message.content:
        total += len(block_text(block))
    return total


def estimate_tokens(
    messages: Sequence[Msg],
    chars_per_token: float = DEFAULT_CHARS_PER_TOKEN,
) -> int:
    """Estimate the token count of a message list.

    Pure and deterministic: the same messages always give the same count.
    Covers role overhead, text, tool names, tool input JSON and nested
    tool result output.

    Args:
        messages: Messages to estimate.
        chars_per_token: Average characters per token.

    Returns:
        Estimated token count, 0 for an empty list.
    """
    if not messages:
        return 0
    total_chars = sum(_message_chars(m) for m in messages)
    return max(1, int(total_chars / chars_per_token))


class CharTokenCounter:
    """Character-ratio token estimate.

    The default counter: no tokenizer download, stable across platforms.

    Implements the TokenCounter protocol.
    """

    def __init__(self, chars_per_token: float = DEFAULT_CHARS_PER_TOKEN) -> None:
        if chars_per_token <= 0:
            raise ValueError(f"chars_per_token must be positive, got {chars_per_token}")
        self._chars_per_token = chars_per_token

    def count_text(self, text: str) -> int:
        if not text:
            return 0
        return max(1, int(len(text) / self._chars_per_token))

    def count_messages(self, messages: Sequence[Msg]) -> int:
        return estimate_tokens(messages, self._chars_per_token)


# Per-message framing in OpenAI chat formats, and the reply primer.
_TOKENS_PER_MESSAGE = 3
_TOKENS_PER_NAME = 1
_REPLY_PRIMER_TOKENS = 3

_FALLBACK_ENCODING = "o200k_base"


@functools.lru_cache(maxsize=None)
def _load_encoding(model: str, encoding_name: str | None):  # type: ignore[no-untyped-def]
    import tiktoken

    if encoding_name is not None:
        return tiktoken.get_encoding(encoding_name)
    try:
        return tiktoken.encoding_for_model(model)
    except KeyError:
        return tiktoken.get_encoding(_FALLBACK_ENCODING)


class TiktokenCounter:
    """Tokenizer-accurate counts for OpenAI-family models.

    Encodings are loaded once per (model, encoding) pair and shared by
    every counter in the process. Unknown models use o200k_base.
    Tool blocks are counted from the same text ``estimate_tokens`` uses.
    """

    def __init__(self, model: str = "gpt-4o", encoding_name: str | None = None) -> None:
        self._enc = _load_encoding(model, encoding_name)

    @property
    def encoding_name(self) -> str:
        return self._enc.name

    def count_text(self, text: str) -> int:
        return len(self._enc.encode(text)) if text else 0

    def count_messages(self, messages: Sequence[Msg]) -> int:
        if not messages:
            return 0
        total = _REPLY_PRIMER_TOKENS
        for message in messages:
            total += _TOKENS_PER_MESSAGE + self.count_text(message.role.value)
            if message.name:
                total += _TOKENS_PER_NAME + self.count_text(message.name)
            total += sum(self.count_text(block_text(b)) for b in message.content)
        return total


class NullTokenCounter:
    """Counts nothing, so only ``msg_threshold`` can trigger compression."""

    def count_text(self, text: str) -> int:
        return 0

    def count_messages(self, messages: Sequence[Msg]) -> int:
        return 0
