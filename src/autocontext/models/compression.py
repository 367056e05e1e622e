"""Domain models for the compression engine.

Provides the threshold check and the result of a completed strategy run.
"""

from __future__ import annotations

from dataclasses import dataclass

from autocontext.models.message import Msg


@dataclass(frozen=True)
class ThresholdCheck:
    """Outcome of comparing a message list against the trigger thresholds."""

    message_count: int
    msg_threshold: int
    token_count: int
    token_threshold: int

    @property
    def msg_count_reached(self) -> bool:
        return self.message_count >= self.msg_threshold

    @property
    def token_reached(self) -> bool:
        return self.token_count >= self.token_threshold

    @property
    def triggered(self) -> bool:
        return self.msg_count_reached or self.token_reached


@dataclass(frozen=True)
class CompressionResult:
    """Result of one strategy application.

    Tracks which strategy ran, the rewritten message list and the
    offload records it created.
    """

    strategy: str
    messages: tuple[Msg, ...]
    original_count: int
    offload_ids: tuple[str, ...]
    original_tokens: int
    compressed_tokens: int

    @property
    def compressed_count(self) -> int:
        return len(self.messages)

    @property
    def compression_ratio(self) -> float:
        """compressed_tokens / original_tokens. Values < 1.0 mean the context shrank."""
        if self.original_tokens == 0:
            return 1.0
        return self.compressed_tokens / self.original_tokens
