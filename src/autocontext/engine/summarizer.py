"""Summarization client used by the compression strategies.

Wraps a ChatModel: builds the request (preamble + messages + closing
instruction), drains the streamed chunks and returns the final text as
a SummaryResult. Model errors are not caught here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from autocontext.llm.models import ResponseAccumulator
from autocontext.models.message import Msg, MsgRole

if TYPE_CHECKING:
    from collections.abc import Sequence

    from autocontext.llm.models import ChatUsage
    from autocontext.llm.protocols import ChatModel
    from autocontext.models.config import GenerateOptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SummaryResult:
    """Final text of a summarization call plus reported usage, if any."""

    text: str
    usage: ChatUsage | None = None
    chunk_count: int = 0


class Summarizer:
    """Produces digests of message lists with a chat model.

    Usage::

        summarizer = Summarizer(model)
        result = summarizer.summarize(messages, preamble="...", closing="...")
        print(result.text)
    """

    def __init__(self, model: ChatModel, options: GenerateOptions | None = None) -> None:
        self._model = model
        self._options = options

    @property
    def model(self) -> ChatModel:
        return self._model

    def summarize(
        self,
        messages: Sequence[Msg],
        *,
        preamble: str | None = None,
        closing: str | None = None,
        label: str = "summary",
    ) -> SummaryResult:
        """Summarize *messages* framed by optional user-authored instructions.

        Args:
            messages: Messages to summarize, sent verbatim.
            preamble: Instruction sent before the messages.
            closing: Instruction sent after the messages.
            label: Name used in log lines.

        Returns:
            SummaryResult with the concatenated streamed text.
        """
        request: list[Msg] = []
        if preamble:
            request.append(Msg.from_text(MsgRole.USER, preamble, name="user"))
        request.extend(messages)
        if closing:
            request.append(Msg.from_text(MsgRole.USER, closing, name="user"))
        return self.complete(request, label=label)

    def complete(self, request: Sequence[Msg], *, label: str = "summary") -> SummaryResult:
        """Send a ready-made request and drain the stream into one result."""
        accumulator = ResponseAccumulator()
        for chunk in self._model.stream(request, None, self._options):
            accumulator.process_chunk(chunk)

        usage = accumulator.usage
        if usage is not None:
            logger.info(
                "%s completed, input tokens: %d, output tokens: %d",
                label,
                usage.input_tokens,
                usage.output_tokens,
            )
        else:
            logger.debug("%s completed, %d chunk(s), no usage reported", label, accumulator.chunk_count)

        return SummaryResult(
            text=accumulator.build_final_message().text_content,
            usage=usage,
            chunk_count=accumulator.chunk_count,
        )
