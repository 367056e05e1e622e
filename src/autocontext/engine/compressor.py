"""Threshold check and strategy runner.

ContextCompressor decides whether a message list needs compressing and,
if so, applies the first strategy that changes it. At most one strategy
runs per call.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from autocontext.engine.strategies import (
    CompressionContext,
    default_strategies,
    new_offload_id,
)
from autocontext.exceptions import CompressionError
from autocontext.models.compression import CompressionResult, ThresholdCheck

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from autocontext.engine.strategies import CompressionStrategy
    from autocontext.engine.summarizer import Summarizer
    from autocontext.models.config import AutoContextConfig
    from autocontext.models.message import Msg
    from autocontext.protocols import TokenCounter
    from autocontext.storage.repositories import ContextOffLoader

logger = logging.getLogger(__name__)


class ContextCompressor:
    """Runs prioritized compression strategies over a message snapshot.

    Args:
        config: Thresholds and prompt overrides.
        offloader: Where removed messages are stored.
        summarizer: Model wrapper for the summarizing strategies.
        token_counter: Counter used for the token trigger.
        strategies: Strategies in priority order. Defaults to the built-in five.
        id_factory: Source of offload uuids.
    """

    def __init__(
        self,
        config: AutoContextConfig,
        offloader: ContextOffLoader,
        summarizer: Summarizer,
        token_counter: TokenCounter,
        strategies: Sequence[CompressionStrategy] | None = None,
        id_factory: Callable[[], str] = new_offload_id,
    ) -> None:
        self._config = config
        self._offloader = offloader
        self._summarizer = summarizer
        self._token_counter = token_counter
        self._strategies = list(strategies) if strategies is not None else default_strategies()
        self._id_factory = id_factory

    @property
    def strategies(self) -> list[CompressionStrategy]:
        return list(self._strategies)

    def check_thresholds(self, messages: Sequence[Msg]) -> ThresholdCheck:
        return ThresholdCheck(
            message_count=len(messages),
            msg_threshold=self._config.msg_threshold,
            token_count=self._token_counter.count_messages(messages),
            token_threshold=self._config.token_threshold,
        )

    def compress(self, messages: Sequence[Msg]) -> CompressionResult | None:
        """Compress *messages* if a threshold is reached.

        Returns:
            CompressionResult for the strategy that ran, or None when no
            threshold is reached or no strategy applies.

        Raises:
            CompressionError: If a strategy returns an empty list.
            ContextOffloadError: If the off-loader fails.
            LLMClientError: If the summarization model fails.
        """
        snapshot = tuple(messages)
        check = self.check_thresholds(snapshot)
        if not check.triggered:
            return None

        logger.info(
            "compression triggered: %d message(s) (threshold %d), %d token(s) (threshold %d)",
            check.message_count,
            check.msg_threshold,
            check.token_count,
            check.token_threshold,
        )

        ctx = CompressionContext(
            messages=snapshot,
            config=self._config,
            offloader=self._offloader,
            summarizer=self._summarizer,
            id_factory=self._id_factory,
        )
        for strategy in self._strategies:
            outcome = strategy.try_apply(ctx)
            if outcome is None:
                continue
            if not outcome.messages and snapshot:
                raise CompressionError(f"Strategy {strategy.name!r} produced an empty message list")

            compressed_tokens = self._token_counter.count_messages(outcome.messages)
            logger.info(
                "strategy %s applied: %d -> %d message(s), %d -> %d token(s)",
                strategy.name,
                len(snapshot),
                len(outcome.messages),
                check.token_count,
                compressed_tokens,
            )
            return CompressionResult(
                strategy=strategy.name,
                messages=tuple(outcome.messages),
                original_count=len(snapshot),
                offload_ids=outcome.offload_ids,
                original_tokens=check.token_count,
                compressed_tokens=compressed_tokens,
            )

        logger.info("no compression strategy applies to %d message(s)", len(snapshot))
        return None
