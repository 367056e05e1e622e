from autocontext.models.compression import CompressionResult, ThresholdCheck
from autocontext.models.config import AutoContextConfig, GenerateOptions, PromptConfig
from autocontext.models.message import (
    ContentBlock,
    Msg,
    MsgRole,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)

__all__ = [
    "AutoContextConfig",
    "CompressionResult",
    "ContentBlock",
    "GenerateOptions",
    "Msg",
    "MsgRole",
    "PromptConfig",
    "TextBlock",
    "ThresholdCheck",
    "ToolResultBlock",
    "ToolUseBlock",
]
