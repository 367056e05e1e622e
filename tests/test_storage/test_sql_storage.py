"""Tests for SqlMemoryStorage and SqlContextOffLoader."""

from __future__ import annotations

import pytest
from sqlalchemy import select, text

from autocontext.exceptions import ContextReloadError, StorageError
from autocontext.storage.engine import create_session_factory, init_db
from autocontext.storage.schema import AutoContextMetaRow, OffloadRow
from autocontext.storage.sql import SqlContextOffLoader, SqlMemoryStorage
from tests.conftest import assistant, tool_call, tool_result, user


class TestSchema:
    def test_tables_created(self, engine):
        with engine.connect() as conn:
            names = {
                row[0]
                for row in conn.execute(text("SELECT name FROM sqlite_master WHERE type='table'"))
            }
        assert {"messages", "offloads", "_autocontext_meta"} <= names

    def test_schema_version_recorded_once(self, engine):
        init_db(engine)
        with create_session_factory(engine)() as session:
            rows = session.execute(select(AutoContextMetaRow)).scalars().all()
        assert [(r.key, r.value) for r in rows] == [("schema_version", "1")]

    def test_unknown_schema_version_rejected(self, engine):
        with create_session_factory(engine).begin() as session:
            row = session.get(AutoContextMetaRow, "schema_version")
            row.value = "99"
        with pytest.raises(StorageError, match="99"):
            init_db(engine)


class TestSqlMemoryStorage:
    def test_add_and_get(self, engine):
        storage = SqlMemoryStorage(engine)
        storage.add_message(user("a"))
        storage.add_message(tool_call("c1"))
        storage.add_message(tool_result("c1", output="r"))
        messages = storage.get_messages()
        assert messages == [user("a"), tool_call("c1"), tool_result("c1", output="r")]

    def test_storage_ids_are_separate(self, engine):
        working = SqlMemoryStorage(engine, storage_id="working")
        original = SqlMemoryStorage(engine, storage_id="original")
        working.add_message(user("w"))
        original.add_message(user("o"))
        assert [m.text_content for m in working.get_messages()] == ["w"]
        assert [m.text_content for m in original.get_messages()] == ["o"]

    def test_delete_message(self, engine):
        storage = SqlMemoryStorage(engine)
        for name in "abc":
            storage.add_message(user(name))
        storage.delete_message(1)
        storage.delete_message(10)
        storage.delete_message(-1)
        assert [m.text_content for m in storage.get_messages()] == ["a", "c"]

    def test_replace_all_keeps_order(self, engine):
        storage = SqlMemoryStorage(engine)
        storage.add_message(user("old"))
        storage.replace_all([user("x"), assistant("y"), user("z")])
        assert [m.text_content for m in storage.get_messages()] == ["x", "y", "z"]

    def test_clear_only_own_ledger(self, engine):
        working = SqlMemoryStorage(engine, storage_id="working")
        original = SqlMemoryStorage(engine, storage_id="original")
        working.add_message(user())
        original.add_message(user())
        working.clear()
        assert len(working) == 0
        assert len(original) == 1

    def test_file_database_persists(self, tmp_path):
        path = str(tmp_path / "ctx.db")
        SqlMemoryStorage(path, storage_id="s").add_message(user("kept"))
        assert [m.text_content for m in SqlMemoryStorage(path, storage_id="s").get_messages()] == ["kept"]


class TestSqlContextOffLoader:
    def test_round_trip(self, engine):
        offloader = SqlContextOffLoader(engine)
        messages = [user("q"), tool_call("c1"), tool_result("c1", output="r")]
        offloader.offload("u1", messages)
        assert offloader.reload("u1") == messages

    def test_overwrite(self, engine):
        offloader = SqlContextOffLoader(engine)
        offloader.offload("u1", [user("old")])
        offloader.offload("u1", [user("new"), user("newer")])
        assert [m.text_content for m in offloader.reload("u1")] == ["new", "newer"]
        with create_session_factory(engine)() as session:
            assert session.get(OffloadRow, ("", "u1")).message_count == 2

    def test_missing_is_empty(self, engine):
        assert SqlContextOffLoader(engine).reload("nope") == []

    def test_sessions_isolated(self, engine):
        SqlContextOffLoader(engine, session_id="s1").offload("u1", [user()])
        assert SqlContextOffLoader(engine, session_id="s2").reload("u1") == []
        assert SqlContextOffLoader(engine, session_id="s1").list_ids() == ["u1"]

    def test_for_session_rebinds_same_database(self, engine):
        base = SqlContextOffLoader(engine)
        scoped = base.for_session("s1")
        assert scoped.session_id == "s1"
        assert scoped.for_session("s1") is scoped
        scoped.offload("u1", [user()])
        assert base.reload("u1") == []
        assert SqlContextOffLoader(engine, session_id="s1").reload("u1") == [user()]

    def test_clear_and_list(self, engine):
        offloader = SqlContextOffLoader(engine)
        offloader.offload("b", [user()])
        offloader.offload("a", [user()])
        assert offloader.list_ids() == ["a", "b"]
        offloader.clear("a")
        offloader.clear("missing")
        assert offloader.list_ids() == ["b"]

    def test_corrupt_payload_raises_reload_error(self, engine):
        offloader = SqlContextOffLoader(engine)
        offloader.offload("u1", [user()])
        with create_session_factory(engine).begin() as session:
            session.get(OffloadRow, ("", "u1")).payload_json = "{broken"
        with pytest.raises(ContextReloadError) as exc_info:
            offloader.reload("u1")
        assert exc_info.value.uuid == "u1"
