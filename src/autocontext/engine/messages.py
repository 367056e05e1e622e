"""Message list helpers used by the compression strategies.

All functions are pure: they read message sequences and return new
values. Nothing here mutates its input.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from autocontext.models.message import (
    Msg,
    MsgRole,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    msg_list_adapter,
)

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence


# ---------------------------------------------------------------------------
# Inspection
# ---------------------------------------------------------------------------


def latest_index(messages: Sequence[Msg], role: MsgRole) -> int:
    """Index of the last message with *role*, or -1 if there is none."""
    for i in range(len(messages) - 1, -1, -1):
        if messages[i].role == role:
            return i
    return -1


def is_tool_message(msg: Msg) -> bool:
    """True for the tool role or any message carrying a tool-use/tool-result block."""
    if msg.role == MsgRole.TOOL:
        return True
    return msg.has_blocks(ToolUseBlock) or msg.has_blocks(ToolResultBlock)


def flatten_text(msg: Msg) -> str:
    """All readable content of a message as one string.

    Text blocks verbatim, tool calls as name plus JSON input, tool results
    as their output text. Used for size checks and previews.
    """
    parts: list[str] = []
    for block in msg.content:
        if isinstance(block, TextBlock):
            parts.append(block.text)
        elif isinstance(block, ToolUseBlock):
            parts.append(
                f"{block.name}({json.dumps(block.input, ensure_ascii=False, default=str)})"
            )
        elif isinstance(block, ToolResultBlock):
            parts.append(block.output_text)
    return "\n".join(parts)


def find_tool_run(
    messages: Sequence[Msg], search_end: int, min_consecutive: int
) -> tuple[int, int] | None:
    """Find the earliest run of tool messages in ``[0, search_end)``.

    A run qualifies when it is longer than *min_consecutive* messages.

    Returns:
        ``(start, end)`` with *end* inclusive, or None if no run qualifies.
    """
    run_start = -1
    count = 0
    for i in range(min(search_end, len(messages))):
        if is_tool_message(messages[i]):
            if count == 0:
                run_start = i
            count += 1
            continue
        if count > min_consecutive:
            return run_start, i - 1
        count = 0
        run_start = -1

    if count > min_consecutive:
        return run_start, run_start + count - 1
    return None


def find_round_pairs(messages: Sequence[Msg], search_end: int) -> list[tuple[int, int]]:
    """Find ``(user_index, assistant_index)`` pairs in ``[0, search_end)``.

    A user message opens a pair and the next assistant message closes it.
    A later user message before the assistant replaces the opener. Pairs
    with nothing between the user and the assistant are left out.
    """
    pairs: list[tuple[int, int]] = []
    user_index = -1
    for i in range(min(search_end, len(messages))):
        role = messages[i].role
        if role == MsgRole.USER:
            user_index = i
        elif role == MsgRole.ASSISTANT and user_index >= 0:
            if i - user_index != 1:
                pairs.append((user_index, i))
            user_index = -1
    return pairs


# ---------------------------------------------------------------------------
# Rewriting
# ---------------------------------------------------------------------------


def replace_range(
    messages: Sequence[Msg], start: int, end: int, new_msg: Msg
) -> list[Msg]:
    """Return a copy of *messages* with ``[start, end]`` replaced by *new_msg*.

    *end* is inclusive and clamped to the last index. Invalid ranges
    (negative start, start past the end, end before start) return an
    unchanged copy.
    """
    result = list(messages)
    size = len(result)
    if start < 0 or end < start or start >= size:
        return result
    end = min(end, size - 1)
    return result[:start] + [new_msg] + result[end + 1:]


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def serialize_msg_list(messages: Sequence[Msg]) -> list[dict[str, Any]]:
    """Convert messages to JSON-compatible dicts with block ``type`` tags."""
    return [m.model_dump(mode="json") for m in messages]


def deserialize_msg_list(data: Sequence[Mapping[str, Any]]) -> list[Msg]:
    """Rebuild messages from dicts produced by serialize_msg_list.

    Raises:
        pydantic.ValidationError: On missing fields or unknown block types.
    """
    return msg_list_adapter.validate_python(list(data))


def serialize_msg_list_map(
    mapping: Mapping[str, Sequence[Msg]],
) -> dict[str, list[dict[str, Any]]]:
    """Serialize a ``{key: [Msg, ...]}`` mapping."""
    return {key: serialize_msg_list(msgs) for key, msgs in mapping.items()}


def deserialize_msg_list_map(
    data: Mapping[str, Sequence[Mapping[str, Any]]],
) -> dict[str, list[Msg]]:
    """Inverse of serialize_msg_list_map."""
    return {key: deserialize_msg_list(items) for key, items in data.items()}
