"""Compression strategies, in the order the compressor tries them.

Each strategy looks at a snapshot of the working messages and either
returns a rewritten list or None when it does not apply. Strategies never
mutate the snapshot. Whatever they remove is offloaded first, so a failing
off-loader or model leaves the working history untouched.

Built-in order:
- ToolRunCompression: summarize a long historic run of tool messages
- LargePayloadOffload(protect_tail=True): offload oversized messages outside the tail
- LargePayloadOffload(protect_tail=False): same, up to the latest assistant turn
- PreviousRoundSummary: summarize finished user/assistant rounds
- CurrentRoundCompression: digest the tool traffic after the latest user message
"""

from __future__ import annotations

import json
import logging
import uuid as uuid_mod
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from autocontext.engine.messages import (
    find_round_pairs,
    find_tool_run,
    flatten_text,
    is_tool_message,
    latest_index,
    replace_range,
)
from autocontext.models.message import Msg, MsgRole, TextBlock, ToolResultBlock, ToolUseBlock
from autocontext.prompts.compress import (
    ROUND_SUMMARY_PROMPT_END,
    ROUND_SUMMARY_PROMPT_START,
    TOOL_COMPRESS_PROMPT_END,
    TOOL_COMPRESS_PROMPT_START,
    build_current_round_prompt,
    format_current_round,
    format_offload_preview,
    format_round_summary,
    format_tool_summary,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from autocontext.engine.summarizer import Summarizer
    from autocontext.models.config import AutoContextConfig
    from autocontext.storage.repositories import ContextOffLoader

logger = logging.getLogger(__name__)

SUMMARY_AUTHOR = "assistant"


def new_offload_id() -> str:
    """Fresh random uuid for an offload record."""
    return str(uuid_mod.uuid4())


@dataclass(frozen=True)
class CompressionContext:
    """Everything a strategy needs for one compression pass."""

    messages: tuple[Msg, ...]
    config: AutoContextConfig
    offloader: ContextOffLoader
    summarizer: Summarizer
    id_factory: Callable[[], str] = field(default=new_offload_id)

    def offload(self, messages: Sequence[Msg]) -> str:
        """Store *messages* under a fresh uuid and return it."""
        offload_id = self.id_factory()
        self.offloader.offload(offload_id, list(messages))
        return offload_id


@dataclass(frozen=True)
class StrategyOutcome:
    """A rewritten message list and the offload records behind it."""

    messages: list[Msg]
    offload_ids: tuple[str, ...] = ()


def _summary_msg(text: str) -> Msg:
    return Msg.from_text(MsgRole.ASSISTANT, text, name=SUMMARY_AUTHOR)


class CompressionStrategy(ABC):
    """Base class for compression strategies.

    Example::

        class DropSystemNoise(CompressionStrategy):
            @property
            def name(self) -> str:
                return "drop-system-noise"

            def try_apply(self, ctx):
                kept = [m for m in ctx.messages if m.role != MsgRole.SYSTEM]
                if len(kept) == len(ctx.messages):
                    return None
                return StrategyOutcome(kept)
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier used in logs and CompressionResult.strategy."""
        ...

    @abstractmethod
    def try_apply(self, ctx: CompressionContext) -> StrategyOutcome | None:
        """Return the rewritten messages, or None if this strategy does not apply."""
        ...


# ---------------------------------------------------------------------------
# Strategy 1: historic tool runs
# ---------------------------------------------------------------------------


class ToolRunCompression(CompressionStrategy):
    """Summarize the earliest long run of tool messages before the latest assistant turn."""

    @property
    def name(self) -> str:
        return "tool_run"

    def try_apply(self, ctx: CompressionContext) -> StrategyOutcome | None:
        messages = ctx.messages
        latest_assistant = latest_index(messages, MsgRole.ASSISTANT)
        if latest_assistant < 0:
            logger.debug("tool_run skipped: no assistant message")
            return None

        run = find_tool_run(
            messages, latest_assistant, ctx.config.min_consecutive_tool_messages
        )
        if run is None:
            logger.debug("tool_run skipped: no run longer than %d", ctx.config.min_consecutive_tool_messages)
            return None

        start, end = run
        run_msgs = messages[start:end + 1]
        logger.info(
            "compress tool invocations, start index %d, end index %d, tool msg count %d",
            start,
            end,
            len(run_msgs),
        )

        offload_id = ctx.offload(run_msgs)
        preamble = ctx.config.prompts.tool_compress_prompt or TOOL_COMPRESS_PROMPT_START
        result = ctx.summarizer.summarize(
            run_msgs,
            preamble=preamble,
            closing=TOOL_COMPRESS_PROMPT_END,
            label="tool_run",
        )
        summary = _summary_msg(format_tool_summary(result.text, offload_id))
        return StrategyOutcome(replace_range(messages, start, end, summary), (offload_id,))


# ---------------------------------------------------------------------------
# Strategies 2 and 3: single large payloads
# ---------------------------------------------------------------------------


class LargePayloadOffload(CompressionStrategy):
    """Offload each oversized message and leave a short preview in its place.

    With ``protect_tail`` the last ``last_keep`` messages are left alone
    as well as the latest assistant turn.
    """

    def __init__(self, protect_tail: bool = True) -> None:
        self._protect_tail = protect_tail

    @property
    def name(self) -> str:
        return "large_payload_tail_protected" if self._protect_tail else "large_payload"

    @property
    def protect_tail(self) -> bool:
        return self._protect_tail

    def search_end(self, messages: Sequence[Msg], last_keep: int) -> int:
        """Exclusive upper bound of the scan."""
        latest_assistant = latest_index(messages, MsgRole.ASSISTANT)
        if not self._protect_tail:
            return max(latest_assistant, 0)
        tail_start = len(messages) - last_keep
        if latest_assistant < 0:
            return tail_start
        return min(latest_assistant, tail_start)

    def try_apply(self, ctx: CompressionContext) -> StrategyOutcome | None:
        messages = ctx.messages
        config = ctx.config
        if len(messages) < config.last_keep:
            logger.debug(
                "%s skipped: %d message(s), last_keep is %d",
                self.name,
                len(messages),
                config.last_keep,
            )
            return None

        end = self.search_end(messages, config.last_keep)
        result = list(messages)
        offload_ids: list[str] = []
        for i in range(end - 1, -1, -1):
            msg = result[i]
            text = flatten_text(msg)
            if len(text) <= config.large_payload_threshold:
                continue

            offload_id = ctx.offload([msg])
            preview = text[:config.offload_single_preview]
            if len(text) > config.offload_single_preview:
                preview += "..."
            result[i] = Msg.from_text(
                msg.role,
                format_offload_preview(preview, offload_id),
                name=msg.name,
            )
            offload_ids.append(offload_id)
            logger.info(
                "offloaded large message at index %d (%d chars), uuid: %s",
                i,
                len(text),
                offload_id,
            )

        if not offload_ids:
            return None
        return StrategyOutcome(result, tuple(offload_ids))


# ---------------------------------------------------------------------------
# Strategy 4: previous rounds
# ---------------------------------------------------------------------------


class PreviousRoundSummary(CompressionStrategy):
    """Summarize what happened between each earlier user message and its answer.

    The user message and the closing assistant message's position are
    replaced by the user message followed by one summary message.
    """

    @property
    def name(self) -> str:
        return "previous_round"

    def try_apply(self, ctx: CompressionContext) -> StrategyOutcome | None:
        messages = ctx.messages
        latest_assistant = latest_index(messages, MsgRole.ASSISTANT)
        if latest_assistant < 0:
            logger.debug("previous_round skipped: no assistant message")
            return None

        pairs = find_round_pairs(messages, latest_assistant)
        if not pairs:
            logger.debug("previous_round skipped: no round with intervening messages")
            return None

        preamble = ctx.config.prompts.previous_round_summary_prompt or ROUND_SUMMARY_PROMPT_START
        result = list(messages)
        offload_ids: list[str] = []
        # Back to front so earlier indices stay valid.
        for user_index, assistant_index in reversed(pairs):
            round_msgs = result[user_index + 1:assistant_index + 1]
            offload_id = ctx.offload(round_msgs)
            summary = ctx.summarizer.summarize(
                round_msgs,
                preamble=preamble,
                closing=ROUND_SUMMARY_PROMPT_END,
                label="previous_round",
            )
            result = replace_range(
                result,
                user_index + 1,
                assistant_index,
                _summary_msg(format_round_summary(summary.text, offload_id)),
            )
            offload_ids.append(offload_id)
            logger.info(
                "summarized round user index %d, assistant index %d, %d message(s), uuid: %s",
                user_index,
                assistant_index,
                len(round_msgs),
                offload_id,
            )

        return StrategyOutcome(result, tuple(offload_ids))


# ---------------------------------------------------------------------------
# Strategy 5: current round
# ---------------------------------------------------------------------------


def _cap(text: str, limit: int) -> str:
    if len(text) > limit:
        return text[:limit] + "..."
    return text


def render_tool_info(messages: Sequence[Msg], result_cap: int) -> str:
    """Render current-round tool traffic for the compression prompt.

    Tool calls keep name, id and input in full. Tool results and plain
    text are cut to *result_cap* characters.
    """
    lines = ["<current_round_tool_calls>"]
    for msg in messages:
        for block in msg.content:
            if isinstance(block, ToolUseBlock):
                lines.append(f"Tool Call: {block.name} (ID: {block.id})")
                if block.input:
                    args = json.dumps(block.input, ensure_ascii=False, default=str)
                    lines.append(f"  Parameters: {args}")
            elif isinstance(block, ToolResultBlock):
                lines.append(f"Tool Result: {block.name} (ID: {block.id})")
                output = block.output_text
                if output:
                    lines.append(f"  Result: {_cap(output, result_cap)}")
            elif isinstance(block, TextBlock) and block.text:
                lines.append(f"{msg.role.value}: {_cap(block.text, result_cap)}")
    lines.append("</current_round_tool_calls>")
    return "\n".join(lines)


class CurrentRoundCompression(CompressionStrategy):
    """Merge the tool traffic after the latest user message into one digest."""

    @property
    def name(self) -> str:
        return "current_round"

    def try_apply(self, ctx: CompressionContext) -> StrategyOutcome | None:
        messages = ctx.messages
        latest_user = latest_index(messages, MsgRole.USER)
        if latest_user < 0:
            logger.debug("current_round skipped: no user message")
            return None

        current = messages[latest_user + 1:]
        if not current:
            logger.debug("current_round skipped: nothing after the latest user message")
            return None
        if not any(is_tool_message(m) for m in current):
            logger.debug("current_round skipped: no tool messages in the current round")
            return None

        config = ctx.config
        tool_info = render_tool_info(current, config.current_round_result_cap)
        offload_id = ctx.offload(current)
        prompt = build_current_round_prompt(
            tool_info,
            compression_ratio=config.current_round_compression_ratio,
            template=config.prompts.current_round_compress_prompt,
        )
        result = ctx.summarizer.complete(
            [Msg.from_text(MsgRole.USER, prompt, name="user")],
            label="current_round",
        )
        logger.info(
            "compressed current round, %d message(s) after user index %d, uuid: %s",
            len(current),
            latest_user,
            offload_id,
        )
        summary = _summary_msg(format_current_round(result.text, offload_id))
        return StrategyOutcome(
            replace_range(messages, latest_user + 1, len(messages) - 1, summary),
            (offload_id,),
        )


def default_strategies() -> list[CompressionStrategy]:
    """The built-in strategies in priority order."""
    return [
        ToolRunCompression(),
        LargePayloadOffload(protect_tail=True),
        LargePayloadOffload(protect_tail=False),
        PreviousRoundSummary(),
        CurrentRoundCompression(),
    ]
