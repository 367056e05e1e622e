"""Configuration models for autocontext.

AutoContextConfig holds the compression thresholds and the pluggable
storage, off-loader and token-counter instances.
PromptConfig holds optional overrides for the summarization prompts.
GenerateOptions carries per-call generation settings for a chat model.
"""

from __future__ import annotations

import types
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PromptConfig(BaseModel):
    """Custom prompt overrides. ``None`` means use the built-in prompt."""

    model_config = ConfigDict(frozen=True)

    tool_compress_prompt: Optional[str] = None
    previous_round_summary_prompt: Optional[str] = None
    current_round_compress_prompt: Optional[str] = None


class AutoContextConfig(BaseModel):
    """Thresholds and collaborators for automatic context compression."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    large_payload_threshold: int = Field(default=5 * 1024, gt=0)
    max_token: int = Field(default=128 * 1024, gt=0)
    token_ratio: float = 0.75
    msg_threshold: int = Field(default=100, gt=0)
    last_keep: int = Field(default=50, ge=0)
    offload_single_preview: int = Field(default=200, ge=0)
    min_consecutive_tool_messages: int = Field(default=6, ge=0)
    current_round_result_cap: int = Field(default=500, gt=0)
    current_round_compression_ratio: float = 0.3
    session_id: Optional[str] = None
    prompts: PromptConfig = Field(default_factory=PromptConfig)

    # Pluggable collaborators; None = AutoContextMemory builds a default.
    context_storage: Optional[Any] = None  # MemoryStorage (working)
    history_storage: Optional[Any] = None  # MemoryStorage (original)
    context_offloader: Optional[Any] = None  # ContextOffLoader
    token_counter: Optional[Any] = None  # TokenCounter

    @field_validator("token_ratio", "current_round_compression_ratio")
    @classmethod
    def _check_ratio(cls, value: float) -> float:
        if not 0.0 < value <= 1.0:
            raise ValueError(f"ratio must be in (0, 1], got {value}")
        return value

    @property
    def token_threshold(self) -> int:
        """Token count at which compression starts: floor(max_token * token_ratio)."""
        return int(self.max_token * self.token_ratio)


@dataclass(frozen=True)
class GenerateOptions:
    """Generation settings for a single chat model call.

    All fields are Optional -- None means 'use the model's default'.

    Example::

        options = GenerateOptions(model="gpt-4o-mini", temperature=0.2)
    """

    model: str | None = None
    temperature: float | None = None
    top_p: float | None = None
    max_tokens: int | None = None
    extra: dict | None = None

    def __post_init__(self) -> None:
        if self.extra is not None:
            object.__setattr__(self, "extra", types.MappingProxyType(dict(self.extra)))

    def to_payload(self) -> dict[str, Any]:
        """Return the non-None settings as request payload keys."""
        payload: dict[str, Any] = {}
        if self.model is not None:
            payload["model"] = self.model
        if self.temperature is not None:
            payload["temperature"] = self.temperature
        if self.top_p is not None:
            payload["top_p"] = self.top_p
        if self.max_tokens is not None:
            payload["max_tokens"] = self.max_tokens
        if self.extra:
            payload.update(self.extra)
        return payload
