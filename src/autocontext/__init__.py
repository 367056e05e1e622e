"""autocontext: automatic context compression for LLM conversation memory.

Long conversations outgrow the model's window. AutoContextMemory keeps a
bounded working history for the model and a full-fidelity original
history, and offloads whatever compression removes so it can be reloaded.
"""

from autocontext._version import __version__

# Core entry point
from autocontext.memory import AutoContextMemory

# Messages
from autocontext.models.message import (
    ContentBlock,
    Msg,
    MsgRole,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)

# Configuration and results
from autocontext.models.config import AutoContextConfig, GenerateOptions, PromptConfig
from autocontext.models.compression import CompressionResult, ThresholdCheck

# Engine
from autocontext.engine.compressor import ContextCompressor
from autocontext.engine.strategies import (
    CompressionContext,
    CompressionStrategy,
    CurrentRoundCompression,
    LargePayloadOffload,
    PreviousRoundSummary,
    StrategyOutcome,
    ToolRunCompression,
    default_strategies,
)
from autocontext.engine.summarizer import Summarizer, SummaryResult
from autocontext.engine.tokens import (
    CharTokenCounter,
    NullTokenCounter,
    TiktokenCounter,
    estimate_tokens,
)
from autocontext.protocols import TokenCounter

# Storage
from autocontext.storage.memory import InMemoryStorage
from autocontext.storage.offload import InMemoryContextOffLoader, LocalFileContextOffLoader
from autocontext.storage.repositories import ContextOffLoader, MemoryStorage
from autocontext.storage.sql import SqlContextOffLoader, SqlMemoryStorage

# LLM
from autocontext.llm import ChatModel, ChatResponse, ChatUsage, OpenAIChatModel

# Prompts
from autocontext.prompts.compress import extract_offload_uuids

# Exceptions
from autocontext.exceptions import (
    AutoContextError,
    CompressionError,
    ContextOffloadError,
    ContextReloadError,
    StorageError,
)

__all__ = [
    "__version__",
    "AutoContextMemory",
    # Messages
    "ContentBlock",
    "Msg",
    "MsgRole",
    "TextBlock",
    "ToolResultBlock",
    "ToolUseBlock",
    # Configuration and results
    "AutoContextConfig",
    "GenerateOptions",
    "PromptConfig",
    "CompressionResult",
    "ThresholdCheck",
    # Engine
    "ContextCompressor",
    "CompressionContext",
    "CompressionStrategy",
    "CurrentRoundCompression",
    "LargePayloadOffload",
    "PreviousRoundSummary",
    "StrategyOutcome",
    "ToolRunCompression",
    "default_strategies",
    "Summarizer",
    "SummaryResult",
    "CharTokenCounter",
    "NullTokenCounter",
    "TiktokenCounter",
    "TokenCounter",
    "estimate_tokens",
    # Storage
    "ContextOffLoader",
    "MemoryStorage",
    "InMemoryStorage",
    "InMemoryContextOffLoader",
    "LocalFileContextOffLoader",
    "SqlContextOffLoader",
    "SqlMemoryStorage",
    # LLM
    "ChatModel",
    "ChatResponse",
    "ChatUsage",
    "OpenAIChatModel",
    # Prompts
    "extract_offload_uuids",
    # Exceptions
    "AutoContextError",
    "CompressionError",
    "ContextOffloadError",
    "ContextReloadError",
    "StorageError",
]
