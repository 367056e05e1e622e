"""AutoContextMemory -- conversation memory that compresses itself.

Keeps two ledgers: the *working* history the model sees, which is
rewritten by compression, and the *original* history, which only ever
grows. Removed content is always recoverable from the original ledger
or from the off-loader by the uuid embedded in the replacement text.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

from autocontext.engine.compressor import ContextCompressor
from autocontext.engine.messages import deserialize_msg_list, serialize_msg_list
from autocontext.engine.summarizer import Summarizer
from autocontext.engine.tokens import CharTokenCounter
from autocontext.models.config import AutoContextConfig
from autocontext.storage.memory import InMemoryStorage
from autocontext.storage.offload import InMemoryContextOffLoader

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from autocontext.engine.strategies import CompressionStrategy
    from autocontext.llm.protocols import ChatModel
    from autocontext.models.compression import CompressionResult
    from autocontext.models.config import GenerateOptions
    from autocontext.models.message import Msg
    from autocontext.protocols import TokenCounter
    from autocontext.storage.repositories import ContextOffLoader, MemoryStorage

logger = logging.getLogger(__name__)


def _or_default(value: Any, factory: Callable[[], Any]) -> Any:
    # Storages define __len__, so an empty one is falsy.
    return value if value is not None else factory()


class AutoContextMemory:
    """Memory with automatic context compression.

    ``add_message`` appends to both ledgers. ``get_messages`` checks the
    working history against the configured thresholds, applies at most
    one compression strategy, and returns a copy of the result.

    Usage::

        memory = AutoContextMemory(AutoContextConfig(msg_threshold=40), model)
        memory.add_message(Msg.from_text("user", "Hello"))
        context = memory.get_messages()

    Args:
        config: Thresholds, prompt overrides and optional pluggable
            storage, off-loader and token counter. With a ``session_id``
            the off-loader is scoped to that session, so memories sharing
            one off-loader backend never see each other's records.
        model: Chat model used for summaries.
        options: Generation settings for summarization calls.
        strategies: Custom strategies in priority order.
        id_factory: Source of offload uuids. Defaults to uuid4.
    """

    def __init__(
        self,
        config: AutoContextConfig,
        model: ChatModel,
        *,
        options: GenerateOptions | None = None,
        strategies: Sequence[CompressionStrategy] | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._config = config

        self._working: MemoryStorage = _or_default(config.context_storage, InMemoryStorage)
        self._original: MemoryStorage = _or_default(config.history_storage, InMemoryStorage)
        if self._working is self._original:
            raise ValueError("context_storage and history_storage must be different objects")
        self._offloader: ContextOffLoader = _or_default(
            config.context_offloader, InMemoryContextOffLoader
        )
        if config.session_id:
            self._offloader = self._offloader.for_session(config.session_id)
            logger.debug("offload records scoped to session %s", config.session_id)
        self._token_counter: TokenCounter = _or_default(config.token_counter, CharTokenCounter)

        kwargs: dict[str, Any] = {}
        if id_factory is not None:
            kwargs["id_factory"] = id_factory
        self._compressor = ContextCompressor(
            self._config,
            self._offloader,
            Summarizer(model, options),
            self._token_counter,
            strategies=strategies,
            **kwargs,
        )
        self._compress_lock = threading.Lock()
        self._last_compression: CompressionResult | None = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def config(self) -> AutoContextConfig:
        return self._config

    @property
    def session_id(self) -> str | None:
        return self._config.session_id

    @property
    def offloader(self) -> ContextOffLoader:
        return self._offloader

    @property
    def compressor(self) -> ContextCompressor:
        return self._compressor

    @property
    def last_compression(self) -> CompressionResult | None:
        """Result of the most recent compression, or None if none has run."""
        return self._last_compression

    # ------------------------------------------------------------------
    # Memory contract
    # ------------------------------------------------------------------

    def add_message(self, message: Msg) -> None:
        """Append *message* to both the working and the original history."""
        self._working.add_message(message)
        self._original.add_message(message)

    def get_messages(self) -> list[Msg]:
        """Return the working history, compressing it first if needed.

        Raises:
            ContextOffloadError: If the off-loader fails. Nothing is swapped.
            LLMClientError: If a summary cannot be produced. Nothing is swapped.
        """
        with self._compress_lock:
            current = self._working.get_messages()
            result = self._compressor.compress(current)
            if result is None:
                return current

            self._working.replace_all(result.messages)
            self._last_compression = result
            return list(result.messages)

    def delete_message(self, index: int) -> None:
        """Delete from the working history only. The original ledger keeps it."""
        self._working.delete_message(index)

    def clear(self) -> None:
        """Empty both histories. Offloaded records are kept."""
        self._working.clear()
        self._original.clear()
        self._last_compression = None

    # ------------------------------------------------------------------
    # Extras
    # ------------------------------------------------------------------

    def get_original_messages(self) -> list[Msg]:
        """Full-fidelity history, in insertion order."""
        return self._original.get_messages()

    def reload(self, uuid: str) -> list[Msg]:
        """Messages offloaded under *uuid*, or [] if there is no such record."""
        return self._offloader.reload(uuid)

    def state_dict(self) -> dict[str, list[dict[str, Any]]]:
        """Both histories as JSON-compatible data."""
        return {
            "working": serialize_msg_list(self._working.get_messages()),
            "original": serialize_msg_list(self._original.get_messages()),
        }

    def load_state_dict(self, state: dict[str, Any]) -> None:
        """Restore both histories from :meth:`state_dict` output.

        Missing keys leave the corresponding history empty.

        Raises:
            pydantic.ValidationError: If a stored message is malformed.
        """
        working = deserialize_msg_list(state.get("working") or [])
        original = deserialize_msg_list(state.get("original") or [])
        self._working.replace_all(working)
        self._original.replace_all(original)
        self._last_compression = None
        logger.debug(
            "loaded state: %d working message(s), %d original message(s)",
            len(working),
            len(original),
        )
