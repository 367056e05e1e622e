"""Tests for AutoContextMemory.

Covers the memory contract (add/get/delete/clear), the two ledgers,
compression behavior seen through get_messages(), failure handling,
and state export/import.
"""

from __future__ import annotations

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from autocontext.engine.tokens import NullTokenCounter
from autocontext.exceptions import ContextOffloadError
from autocontext.llm import LLMResponseError
from autocontext.memory import AutoContextMemory
from autocontext.models.config import AutoContextConfig, PromptConfig
from autocontext.models.message import Msg, MsgRole
from autocontext.prompts.compress import extract_offload_uuids
from autocontext.storage.memory import InMemoryStorage
from autocontext.storage.offload import InMemoryContextOffLoader, LocalFileContextOffLoader
from autocontext.storage.sql import SqlContextOffLoader, SqlMemoryStorage
from tests.conftest import (
    MockChatModel,
    assistant,
    sequential_ids,
    tool_pairs,
    tool_result,
    user,
)
from tests.strategies import message


def make_memory(config=None, model=None, **kwargs) -> AutoContextMemory:
    return AutoContextMemory(
        config if config is not None else AutoContextConfig(),
        model if model is not None else MockChatModel(),
        id_factory=sequential_ids(),
        **kwargs,
    )


def fill(memory: AutoContextMemory, messages) -> None:
    for msg in messages:
        memory.add_message(msg)


def tool_run_history():
    """10 messages: one 6-message tool run followed by normal turns."""
    return [user("task")] + tool_pairs(3) + [assistant("a1"), user("next"), assistant("a2")]


class FailingOffLoader(InMemoryContextOffLoader):
    def offload(self, uuid, messages):
        raise ContextOffloadError(uuid, "store unavailable")


# ---------------------------------------------------------------------------
# Memory contract
# ---------------------------------------------------------------------------

class TestMemoryContract:
    def test_add_writes_both_ledgers(self):
        memory = make_memory()
        memory.add_message(user("hi"))
        assert memory.get_messages() == [user("hi")]
        assert memory.get_original_messages() == [user("hi")]

    def test_get_messages_returns_copy(self):
        memory = make_memory()
        memory.add_message(user("hi"))
        memory.get_messages().append(user("sneaky"))
        assert len(memory.get_messages()) == 1

    def test_delete_only_touches_working(self):
        memory = make_memory()
        fill(memory, [user("a"), assistant("b")])
        memory.delete_message(0)
        memory.delete_message(7)
        assert [m.text_content for m in memory.get_messages()] == ["b"]
        assert len(memory.get_original_messages()) == 2

    def test_clear_empties_both(self):
        memory = make_memory()
        fill(memory, [user("a"), assistant("b")])
        memory.clear()
        assert memory.get_messages() == []
        assert memory.get_original_messages() == []
        assert memory.last_compression is None

    def test_model_is_required_positionally(self):
        with pytest.raises(TypeError):
            AutoContextMemory(AutoContextConfig())

    def test_same_storage_for_both_ledgers_rejected(self):
        storage = InMemoryStorage()
        config = AutoContextConfig(context_storage=storage, history_storage=storage)
        with pytest.raises(ValueError):
            make_memory(config)

    def test_empty_custom_storage_is_used(self):
        working = InMemoryStorage()
        config = AutoContextConfig(context_storage=working)
        memory = make_memory(config)
        memory.add_message(user("x"))
        assert len(working) == 1

    def test_below_threshold_model_not_called(self):
        model = MockChatModel()
        memory = make_memory(model=model)
        fill(memory, tool_run_history())
        assert memory.get_messages() == tool_run_history()
        assert model.call_count == 0
        assert memory.last_compression is None


# ---------------------------------------------------------------------------
# Compression properties
# ---------------------------------------------------------------------------

class TestIdempotence:
    def test_fast_path_repeats(self):
        memory = make_memory()
        fill(memory, [user(), assistant()])
        assert memory.get_messages() == memory.get_messages()

    def test_second_call_after_compression_is_noop(self, config):
        model = MockChatModel()
        memory = make_memory(config, model)
        fill(memory, tool_run_history())

        first = memory.get_messages()
        second = memory.get_messages()

        assert first == second
        assert model.call_count == 1


class TestMonotonicLedger:
    @settings(max_examples=25, deadline=None, suppress_health_check=[HealthCheck.too_slow])
    @given(st.lists(st.tuples(message, st.booleans()), max_size=30))
    def test_original_keeps_every_add_in_order(self, operations):
        config = AutoContextConfig(
            msg_threshold=5,
            last_keep=2,
            min_consecutive_tool_messages=1,
            large_payload_threshold=100,
            offload_single_preview=10,
        )
        memory = make_memory(config)
        added = []
        for msg, read_back in operations:
            memory.add_message(msg)
            added.append(msg)
            if read_back:
                memory.get_messages()
        assert memory.get_original_messages() == added


class TestReloadRoundTrip:
    def test_offloaded_messages_recoverable_from_hint(self, config):
        memory = make_memory(config)
        history = tool_run_history()
        fill(memory, history)

        compressed = memory.get_messages()

        uuids = extract_offload_uuids(compressed[1].text_content)
        assert uuids == list(memory.last_compression.offload_ids)
        assert memory.reload(uuids[0]) == history[1:7]

    def test_reload_unknown_uuid(self):
        assert make_memory().reload("missing") == []


class TestThresholdBoundary:
    def _rounds(self, count):
        messages = []
        for i in range(count):
            messages += [user(f"q{i}"), tool_result(f"c{i}"), assistant(f"a{i}")]
        return messages

    def test_99_untouched_100_triggers_once(self):
        model = MockChatModel()
        memory = make_memory(AutoContextConfig(msg_threshold=100), model)
        fill(memory, self._rounds(33))

        assert len(memory.get_messages()) == 99
        assert model.call_count == 0
        assert memory.last_compression is None

        memory.add_message(user("q33"))
        result = memory.get_messages()

        assert memory.last_compression.strategy == "previous_round"
        assert memory.last_compression.original_count == 100
        # 32 finished rounds (the latest is protected), each 2 messages -> 1
        assert model.call_count == 32
        assert len(result) == 68

    def test_token_threshold_triggers(self, config):
        config = config.model_copy(update={"msg_threshold": 1000, "max_token": 40, "token_ratio": 0.5})
        model = MockChatModel()
        memory = make_memory(config, model)
        fill(memory, tool_run_history())
        memory.get_messages()
        assert memory.last_compression is not None
        assert memory.last_compression.original_tokens >= 20


class TestTailProtection:
    def test_last_keep_positions_never_offloaded(self):
        config = AutoContextConfig(msg_threshold=60, last_keep=50, large_payload_threshold=100)
        memory = make_memory(config)
        history = []
        for i in range(30):
            history += [
                Msg.from_text(MsgRole.USER, f"u{i}" + "x" * 200),
                Msg.from_text(MsgRole.ASSISTANT, f"a{i}" + "y" * 200),
            ]
        fill(memory, history)

        result = memory.get_messages()

        assert memory.last_compression.strategy == "large_payload_tail_protected"
        assert result[-50:] == history[-50:]
        assert len(memory.last_compression.offload_ids) == 10
        for msg in result[:10]:
            assert extract_offload_uuids(msg.text_content)


class TestStrategyOrdering:
    def test_tool_run_replaced_first(self, config):
        model = MockChatModel(["digest"])
        memory = make_memory(config, model)
        history = tool_run_history()
        fill(memory, history)

        result = memory.get_messages()

        assert len(result) == 5
        assert result[0] == history[0]
        assert result[2:] == history[7:]
        assert result[1].role == MsgRole.ASSISTANT
        assert "<compressed_history>digest</compressed_history>" in result[1].text_content
        assert memory.last_compression.strategy == "tool_run"
        assert model.call_count == 1


class TestCurrentRound:
    def test_three_tool_pairs_merged(self):
        model = MockChatModel(["merged"])
        memory = make_memory(AutoContextConfig(msg_threshold=7), model)
        fill(memory, [user("go")] + tool_pairs(3))

        result = memory.get_messages()

        assert len(result) == 2
        assert result[0] == user("go")
        assert result[1].role == MsgRole.ASSISTANT
        assert result[1].name == "assistant"
        assert "merged" in result[1].text_content
        assert memory.last_compression.strategy == "current_round"
        assert len(memory.get_original_messages()) == 7

    def test_custom_prompt_with_json_braces(self):
        template = 'Summarize as JSON like {"calls": []}. {tool_info}'
        config = AutoContextConfig(
            msg_threshold=7,
            prompts=PromptConfig(current_round_compress_prompt=template),
        )
        model = MockChatModel(["merged"])
        memory = make_memory(config, model)
        fill(memory, [user("go")] + tool_pairs(3))

        result = memory.get_messages()

        assert len(result) == 2
        sent = "\n".join(m.text_content for m in model.calls[0]["messages"])
        assert 'Summarize as JSON like {"calls": []}.' in sent
        assert "{tool_info}" not in sent


class TestTerminal:
    def test_single_exchange_over_token_threshold_unchanged(self):
        model = MockChatModel()
        config = AutoContextConfig(max_token=10, token_ratio=0.5)
        memory = make_memory(config, model)
        history = [user("q" * 100), assistant("a" * 100)]
        fill(memory, history)

        assert memory.compressor.check_thresholds(history).token_reached
        assert memory.get_messages() == history
        assert model.call_count == 0
        assert memory.last_compression is None


# ---------------------------------------------------------------------------
# Failure handling
# ---------------------------------------------------------------------------

class TestFailures:
    def test_model_failure_leaves_working_untouched(self, config):
        working = InMemoryStorage()
        model = MockChatModel(error=LLMResponseError("provider down"))
        memory = make_memory(config.model_copy(update={"context_storage": working}), model)
        history = tool_run_history()
        fill(memory, history)

        with pytest.raises(LLMResponseError):
            memory.get_messages()

        assert working.get_messages() == history
        assert memory.get_original_messages() == history
        assert memory.last_compression is None

    def test_offload_failure_leaves_working_untouched(self, config):
        working = InMemoryStorage()
        config = config.model_copy(
            update={"context_offloader": FailingOffLoader(), "context_storage": working}
        )
        model = MockChatModel()
        memory = make_memory(config, model)
        fill(memory, tool_run_history())

        with pytest.raises(ContextOffloadError):
            memory.get_messages()

        assert working.get_messages() == tool_run_history()
        assert model.call_count == 0


# ---------------------------------------------------------------------------
# Pluggable backends and state
# ---------------------------------------------------------------------------

class TestBackends:
    def test_sql_ledgers_and_offloader(self, engine, config):
        config = config.model_copy(
            update={
                "context_storage": SqlMemoryStorage(engine, storage_id="s1:working"),
                "history_storage": SqlMemoryStorage(engine, storage_id="s1:original"),
                "context_offloader": SqlContextOffLoader(engine, session_id="s1"),
            }
        )
        memory = make_memory(config)
        history = tool_run_history()
        fill(memory, history)

        result = memory.get_messages()

        assert len(result) == 5
        assert SqlMemoryStorage(engine, storage_id="s1:working").get_messages() == result
        assert SqlMemoryStorage(engine, storage_id="s1:original").get_messages() == history
        assert memory.reload("offload-0") == history[1:7]

    def test_local_file_offloader(self, tmp_path, config):
        offloader = LocalFileContextOffLoader(tmp_path, session_id="s1")
        memory = make_memory(config.model_copy(update={"context_offloader": offloader}))
        fill(memory, tool_run_history())
        memory.get_messages()
        assert (tmp_path / "s1" / "offload-0.json").is_file()

    def test_session_id_scopes_default_offloader(self, config):
        memory = make_memory(config.model_copy(update={"session_id": "s1"}))
        assert memory.session_id == "s1"
        assert memory.offloader.session_id == "s1"

    def test_sessions_share_local_file_base(self, tmp_path, config):
        shared = LocalFileContextOffLoader(tmp_path)
        first = make_memory(config.model_copy(update={"session_id": "s1", "context_offloader": shared}))
        second = make_memory(config.model_copy(update={"session_id": "s2", "context_offloader": shared}))
        fill(first, tool_run_history())
        first.get_messages()

        assert (tmp_path / "s1" / "offload-0.json").is_file()
        assert first.reload("offload-0") == tool_run_history()[1:7]
        assert second.reload("offload-0") == []
        assert shared.list_ids() == []

    def test_sessions_share_sql_offloader(self, engine, config):
        shared = SqlContextOffLoader(engine)
        first = make_memory(config.model_copy(update={"session_id": "s1", "context_offloader": shared}))
        second = make_memory(config.model_copy(update={"session_id": "s2", "context_offloader": shared}))
        fill(first, tool_run_history())
        first.get_messages()

        assert second.reload("offload-0") == []

        fill(second, tool_run_history())
        second.get_messages()
        first.offloader.clear("offload-0")

        assert first.reload("offload-0") == []
        assert second.reload("offload-0") == tool_run_history()[1:7]
        assert SqlContextOffLoader(engine, session_id="s2").list_ids() == ["offload-0"]
        assert shared.list_ids() == []

    def test_token_counter_override(self, config):
        config = config.model_copy(
            update={"msg_threshold": 1000, "max_token": 2, "token_counter": NullTokenCounter()}
        )
        model = MockChatModel()
        memory = make_memory(config, model)
        fill(memory, tool_run_history())
        memory.get_messages()
        assert model.call_count == 0


class TestStateDict:
    def test_round_trip(self, config):
        memory = make_memory(config)
        fill(memory, tool_run_history())
        memory.get_messages()
        state = memory.state_dict()

        restored = make_memory(config)
        restored.load_state_dict(state)

        assert restored.get_messages() == memory.get_messages()
        assert restored.get_original_messages() == tool_run_history()

    def test_state_is_json_compatible(self):
        memory = make_memory()
        memory.add_message(user("x"))
        state = memory.state_dict()
        assert state["working"][0]["content"][0] == {"type": "text", "text": "x"}

    def test_missing_keys_leave_empty(self):
        memory = make_memory()
        memory.add_message(user("x"))
        memory.load_state_dict({})
        assert memory.get_messages() == []
        assert memory.get_original_messages() == []
