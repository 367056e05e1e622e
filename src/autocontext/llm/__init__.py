"""LLM client infrastructure for autocontext.

Provides an OpenAI-compatible streaming model, the pluggable ChatModel
protocol, and the chunk accumulator used by the summarizer.
"""

from autocontext.llm.client import OpenAIChatModel
from autocontext.llm.errors import (
    LLMAuthError,
    LLMClientError,
    LLMConfigError,
    LLMRateLimitError,
    LLMResponseError,
)
from autocontext.llm.models import ChatResponse, ChatUsage, ResponseAccumulator
from autocontext.llm.protocols import ChatModel

__all__ = [
    "OpenAIChatModel",
    "ChatModel",
    "ChatResponse",
    "ChatUsage",
    "ResponseAccumulator",
    "LLMClientError",
    "LLMConfigError",
    "LLMRateLimitError",
    "LLMAuthError",
    "LLMResponseError",
]
