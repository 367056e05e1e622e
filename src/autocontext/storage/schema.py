"""SQLAlchemy ORM schema for autocontext.

Defines the tables behind SqlMemoryStorage (messages) and
SqlContextOffLoader (offloads), plus the _autocontext_meta table.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all autocontext ORM models."""

    pass


class MessageRow(Base):
    """One message in a storage ledger.

    ``storage_id`` separates ledgers (working vs. original, one per
    session) inside a single database. Order is the autoincrement ``id``.
    """

    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    storage_id: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    payload_json: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (Index("ix_messages_storage_order", "storage_id", "id"),)


class OffloadRow(Base):
    """An offload record: the messages a compression step removed.

    ``session_id`` is the empty string when no session is configured.
    """

    __tablename__ = "offloads"

    session_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    uuid: Mapped[str] = mapped_column(String(64), primary_key=True)
    payload_json: Mapped[str] = mapped_column(Text, nullable=False)
    message_count: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class AutoContextMetaRow(Base):
    """Key/value metadata, currently just the schema version."""

    __tablename__ = "_autocontext_meta"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
