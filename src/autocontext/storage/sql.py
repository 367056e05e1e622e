"""SQLAlchemy implementations of MemoryStorage and ContextOffLoader.

All queries use SQLAlchemy 2.0 style (select() + session.execute()).
Each write runs in its own transaction via ``sessionmaker.begin()``.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from autocontext.engine.messages import deserialize_msg_list, serialize_msg_list
from autocontext.exceptions import ContextOffloadError, ContextReloadError, StorageError
from autocontext.models.message import Msg
from autocontext.storage.engine import create_session_factory, init_db, resolve_engine
from autocontext.storage.repositories import ContextOffLoader, MemoryStorage
from autocontext.storage.schema import MessageRow, OffloadRow

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _message_row(storage_id: str, message: Msg) -> MessageRow:
    return MessageRow(
        storage_id=storage_id,
        role=message.role.value,
        payload_json=message.model_dump_json(),
        created_at=_now(),
    )


class SqlMemoryStorage(MemoryStorage):
    """Message ledger stored in the ``messages`` table.

    Several ledgers can share one database; each is identified by
    *storage_id* (e.g. ``"working"`` and ``"original"``, optionally
    prefixed with a session id).
    """

    def __init__(self, engine: Engine | str, storage_id: str = "working") -> None:
        self._engine = resolve_engine(engine)
        init_db(self._engine)
        self._session_factory = create_session_factory(self._engine)
        self._storage_id = storage_id

    @property
    def storage_id(self) -> str:
        return self._storage_id

    def add_message(self, message: Msg) -> None:
        try:
            with self._session_factory.begin() as session:
                session.add(_message_row(self._storage_id, message))
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to append message to {self._storage_id!r}: {exc}") from exc

    def get_messages(self) -> list[Msg]:
        stmt = (
            select(MessageRow.payload_json)
            .where(MessageRow.storage_id == self._storage_id)
            .order_by(MessageRow.id)
        )
        try:
            with self._session_factory() as session:
                payloads = session.execute(stmt).scalars().all()
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to read {self._storage_id!r}: {exc}") from exc

        try:
            return [Msg.model_validate_json(p) for p in payloads]
        except ValidationError as exc:
            raise StorageError(f"Corrupt message in {self._storage_id!r}: {exc}") from exc

    def delete_message(self, index: int) -> None:
        if index < 0:
            return
        stmt = (
            select(MessageRow.id)
            .where(MessageRow.storage_id == self._storage_id)
            .order_by(MessageRow.id)
            .offset(index)
            .limit(1)
        )
        try:
            with self._session_factory.begin() as session:
                row_id = session.execute(stmt).scalar_one_or_none()
                if row_id is not None:
                    session.execute(delete(MessageRow).where(MessageRow.id == row_id))
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to delete message {index} from {self._storage_id!r}: {exc}") from exc

    def clear(self) -> None:
        try:
            with self._session_factory.begin() as session:
                session.execute(delete(MessageRow).where(MessageRow.storage_id == self._storage_id))
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to clear {self._storage_id!r}: {exc}") from exc

    def replace_all(self, messages: Sequence[Msg]) -> None:
        try:
            with self._session_factory.begin() as session:
                session.execute(delete(MessageRow).where(MessageRow.storage_id == self._storage_id))
                session.add_all([_message_row(self._storage_id, m) for m in messages])
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to replace {self._storage_id!r}: {exc}") from exc


class SqlContextOffLoader(ContextOffLoader):
    """Off-loader backed by the ``offloads`` table.

    Point it at a shared database URL to use it as a remote store.
    """

    def __init__(self, engine: Engine | str, session_id: str | None = None) -> None:
        self._engine = resolve_engine(engine)
        init_db(self._engine)
        self._session_factory = create_session_factory(self._engine)
        self._session_key = session_id or ""

    @property
    def session_id(self) -> str | None:
        return self._session_key or None

    def for_session(self, session_id: str) -> SqlContextOffLoader:
        if session_id == self._session_key:
            return self
        return SqlContextOffLoader(self._engine, session_id)

    def offload(self, uuid: str, messages: Sequence[Msg]) -> None:
        payload = json.dumps(serialize_msg_list(messages), ensure_ascii=False)
        try:
            with self._session_factory.begin() as session:
                session.merge(
                    OffloadRow(
                        session_id=self._session_key,
                        uuid=uuid,
                        payload_json=payload,
                        message_count=len(messages),
                        created_at=_now(),
                    )
                )
        except SQLAlchemyError as exc:
            raise ContextOffloadError(uuid, str(exc)) from exc
        logger.debug("Offloaded %d message(s) under %s", len(messages), uuid)

    def reload(self, uuid: str) -> list[Msg]:
        try:
            with self._session_factory() as session:
                row = session.get(OffloadRow, (self._session_key, uuid))
        except SQLAlchemyError as exc:
            raise ContextOffloadError(uuid, str(exc)) from exc
        if row is None:
            return []

        try:
            data = json.loads(row.payload_json)
            if not isinstance(data, list):
                raise ValueError(
                    f"expected a JSON list of messages, got {type(data).__name__}"
                )
            return deserialize_msg_list(data)
        except (ValueError, ValidationError) as exc:
            raise ContextReloadError(uuid, exc) from exc

    def clear(self, uuid: str) -> None:
        try:
            with self._session_factory.begin() as session:
                session.execute(
                    delete(OffloadRow).where(
                        OffloadRow.session_id == self._session_key,
                        OffloadRow.uuid == uuid,
                    )
                )
        except SQLAlchemyError as exc:
            raise ContextOffloadError(uuid, str(exc)) from exc

    def list_ids(self) -> list[str]:
        stmt = (
            select(OffloadRow.uuid)
            .where(OffloadRow.session_id == self._session_key)
            .order_by(OffloadRow.uuid)
        )
        try:
            with self._session_factory() as session:
                return list(session.execute(stmt).scalars().all())
        except SQLAlchemyError as exc:
            raise ContextOffloadError("*", str(exc)) from exc
