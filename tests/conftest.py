"""Pytest configuration and shared fixtures."""
import asyncio
from collections.abc import AsyncIterator
from typing import Any

import pytest

from cardioqa.auth import StaticAuthProvider
from cardioqa.config import TOOL_NAME
from cardioqa.conversation import ChatSession, ResponseGenerator
from cardioqa.llm import (
    ChatMessage,
    LLMProvider,
    StreamingResponse,
    TextDelta,
    ToolCallRequest,
    ToolSpec,
)
from cardioqa.storage.in_memory import InMemoryChatStore

SYSTEM_PROMPT = "You are a helpful cardiology assistant."


class ScriptedLLMProvider(LLMProvider):
    """Test double that replays a fixed list of stream events per call.

    Each entry of ``turns`` is one call's script. A script item that is an
    exception instance is raised at that point of the stream. When ``gate``
    is set, every stream waits on it before yielding its first event.
    """

    def __init__(self, turns: list[list[Any]] | None = None, gate: asyncio.Event | None = None):
        self.turns = list(turns or [])
        self.gate = gate
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    @property
    def model(self) -> str:
        return "scripted"

    async def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        system: str | None = None,
        tools: list[ToolSpec] | None = None,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> StreamingResponse:
        self.calls.append({
            "messages": list(messages),
            "system": system,
            "tools": list(tools or []),
            "max_tokens": max_tokens,
        })
        script = self.turns.pop(0) if self.turns else []
        response: StreamingResponse

        async def _events() -> AsyncIterator[Any]:
            if self.gate is not None:
                await self.gate.wait()
            for item in script:
                if isinstance(item, BaseException):
                    raise item
                await asyncio.sleep(0)
                yield item
            response.set_usage({"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15})

        response = StreamingResponse(_events())
        return response

    async def close(self) -> None:
        self.closed = True


def text_turn(*chunks: str) -> list[Any]:
    return [TextDelta(text=chunk) for chunk in chunks]


def tool_turn(
    answer: str = "Common causes include...",
    questions: tuple[str, ...] = ("Is it an emergency?", "What tests are used?"),
    call_id: str | None = "call_1",
    tool_name: str = TOOL_NAME,
) -> list[Any]:
    return [ToolCallRequest(
        call_id=call_id,
        tool_name=tool_name,
        arguments={
            "answer": answer,
            "relatedQuestions": [{"question": q} for q in questions],
        },
    )]


@pytest.fixture
def llm():
    """Return a scripted provider with no turns queued."""
    return ScriptedLLMProvider()


@pytest.fixture
def store():
    return InMemoryChatStore()


@pytest.fixture
def auth():
    """Return an auth provider with a signed-in user."""
    return StaticAuthProvider("user-1")


@pytest.fixture
def make_session(llm, store, auth):
    """Build chat sessions over the shared provider and store."""
    def _make(conversation_id: str | None = None, **generator_kwargs: Any) -> ChatSession:
        generator_kwargs.setdefault("tool_render_delay", 0)
        generator = ResponseGenerator(llm, system_prompt=SYSTEM_PROMPT, **generator_kwargs)
        return ChatSession(generator=generator, auth=auth, store=store, conversation_id=conversation_id)

    return _make


@pytest.fixture
def session(make_session):
    return make_session("conv-1")
