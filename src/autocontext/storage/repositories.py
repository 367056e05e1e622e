"""Abstract storage interfaces for autocontext.

Defines ABC interfaces for message storage and context off-loading.
No SQLAlchemy imports here -- pure abstract contracts.

Concrete implementations are in memory.py, offload.py and sql.py.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from autocontext.models.message import Msg


class MemoryStorage(ABC):
    """Ordered, append-oriented message container.

    Insertion order is conversation order. Implementations must let
    add_message and get_messages run concurrently without a reader ever
    seeing a partially applied write.
    """

    @abstractmethod
    def add_message(self, message: Msg) -> None:
        """Append a message."""
        ...

    @abstractmethod
    def get_messages(self) -> list[Msg]:
        """Return a copy of the stored messages in order."""
        ...

    @abstractmethod
    def delete_message(self, index: int) -> None:
        """Remove the message at *index*. Out-of-range indices are a no-op."""
        ...

    @abstractmethod
    def clear(self) -> None:
        """Remove all messages."""
        ...

    @abstractmethod
    def replace_all(self, messages: Sequence[Msg]) -> None:
        """Atomically swap the whole content for *messages*."""
        ...

    def __len__(self) -> int:
        return len(self.get_messages())


class ContextOffLoader(ABC):
    """Key/value store mapping an offload uuid to the messages it replaced."""

    @abstractmethod
    def offload(self, uuid: str, messages: Sequence[Msg]) -> None:
        """Persist *messages* under *uuid*, overwriting any previous record.

        Raises:
            ContextOffloadError: If the backend cannot store the record.
        """
        ...

    @abstractmethod
    def reload(self, uuid: str) -> list[Msg]:
        """Return the messages stored under *uuid*, or [] if there are none.

        Raises:
            ContextOffloadError: If the backend cannot be read.
            ContextReloadError: If the stored record cannot be decoded.
        """
        ...

    @abstractmethod
    def clear(self, uuid: str) -> None:
        """Delete the record for *uuid*. Missing records are a no-op."""
        ...

    @abstractmethod
    def list_ids(self) -> list[str]:
        """Return the uuids of all stored records, sorted."""
        ...

    @abstractmethod
    def for_session(self, session_id: str) -> ContextOffLoader:
        """Return an off-loader over the same backend, scoped to *session_id*.

        Records written through one session are invisible to every other
        session sharing the backend.
        """
        ...
