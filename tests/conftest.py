"""Shared test fixtures for autocontext.

Provides a recording mock chat model, message builders, and in-memory
SQLite engine fixtures.
"""

from __future__ import annotations

import itertools

import pytest

from autocontext.llm.models import ChatResponse, ChatUsage
from autocontext.models.config import AutoContextConfig
from autocontext.models.message import (
    Msg,
    MsgRole,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)
from autocontext.storage.engine import create_storage_engine, init_db


class MockChatModel:
    """Mock chat model that records calls and streams canned responses.

    Each response is split into two chunks so tests exercise the
    accumulator. The last response repeats once the list runs out.
    """

    def __init__(self, responses=None, usage: ChatUsage | None = None, error=None):
        self.responses = responses or ["summary text"]
        self.usage = usage
        self.error = error
        self.calls: list[dict] = []

    def stream(self, messages, tools=None, options=None):
        self.calls.append({"messages": list(messages), "tools": tools, "options": options})
        if self.error is not None:
            raise self.error
        text = self.responses[min(len(self.calls) - 1, len(self.responses) - 1)]
        half = len(text) // 2
        yield ChatResponse(id="c1", content=(TextBlock(text=text[:half]),))
        yield ChatResponse(id="c1", content=(TextBlock(text=text[half:]),), usage=self.usage)

    @property
    def call_count(self) -> int:
        return len(self.calls)


# ------------------------------------------------------------------
# Message builders
# ------------------------------------------------------------------

def user(text: str = "question") -> Msg:
    return Msg.from_text(MsgRole.USER, text, name="user")


def assistant(text: str = "answer") -> Msg:
    return Msg.from_text(MsgRole.ASSISTANT, text, name="assistant")


def tool_call(call_id: str = "call-1", name: str = "search", **arguments) -> Msg:
    return Msg(
        role=MsgRole.ASSISTANT,
        name="assistant",
        content=(ToolUseBlock(id=call_id, name=name, input=arguments or {"q": call_id}),),
    )


def tool_result(call_id: str = "call-1", name: str = "search", output: str = "result") -> Msg:
    return Msg(
        role=MsgRole.TOOL,
        name=name,
        content=(ToolResultBlock(id=call_id, name=name, output=(TextBlock(text=output),)),),
    )


def tool_pairs(count: int, prefix: str = "call", output: str = "result") -> list[Msg]:
    """``count`` tool-call/tool-result pairs (2 * count messages)."""
    messages: list[Msg] = []
    for i in range(count):
        call_id = f"{prefix}-{i}"
        messages.append(tool_call(call_id))
        messages.append(tool_result(call_id, output=f"{output} {i}"))
    return messages


def sequential_ids(prefix: str = "offload"):
    """Deterministic offload id factory: offload-0, offload-1, ..."""
    counter = itertools.count()
    return lambda: f"{prefix}-{next(counter)}"


# ------------------------------------------------------------------
# Fixtures
# ------------------------------------------------------------------

@pytest.fixture
def model() -> MockChatModel:
    return MockChatModel()


@pytest.fixture
def config() -> AutoContextConfig:
    """Small thresholds so compression is easy to trigger."""
    return AutoContextConfig(
        msg_threshold=10,
        last_keep=4,
        min_consecutive_tool_messages=4,
        large_payload_threshold=200,
        offload_single_preview=20,
    )


@pytest.fixture
def engine():
    """In-memory SQLite engine with all tables created."""
    eng = create_storage_engine(":memory:")
    init_db(eng)
    yield eng
    eng.dispose()
