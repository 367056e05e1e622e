"""In-process MemoryStorage backed by a list."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from autocontext.storage.repositories import MemoryStorage

if TYPE_CHECKING:
    from collections.abc import Sequence

    from autocontext.models.message import Msg


class InMemoryStorage(MemoryStorage):
    """Thread-safe list storage.

    Reads return copies, so a caller iterating the result never sees a
    later append or swap.
    """

    def __init__(self, messages: Sequence[Msg] | None = None) -> None:
        self._lock = threading.RLock()
        self._messages: list[Msg] = list(messages or [])

    def add_message(self, message: Msg) -> None:
        with self._lock:
            self._messages.append(message)

    def get_messages(self) -> list[Msg]:
        with self._lock:
            return list(self._messages)

    def delete_message(self, index: int) -> None:
        with self._lock:
            if 0 <= index < len(self._messages):
                del self._messages[index]

    def clear(self) -> None:
        with self._lock:
            self._messages = []

    def replace_all(self, messages: Sequence[Msg]) -> None:
        new_messages = list(messages)
        with self._lock:
            self._messages = new_messages

    def __len__(self) -> int:
        with self._lock:
            return len(self._messages)
