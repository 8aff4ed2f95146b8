"""Tests for the streaming response generator."""
import asyncio

import pytest

from cardioqa.config import TOOL_NAME
from cardioqa.conversation import (
    ANSWER_TOOL,
    AnswerCard,
    BotMessage,
    Conversation,
    ConversationState,
    Message,
    ResponseGenerator,
    SpinnerMessage,
    StreamableUI,
    ToolCallPart,
    ToolResultPart,
    TurnPhase,
    has_valid_tool_pairing,
    to_chat_messages,
)
from cardioqa.exceptions import (
    ModelStreamError,
    StreamTimeoutError,
    ToolArgumentsError,
    UnknownToolError,
)
from cardioqa.llm import TextDelta

from conftest import SYSTEM_PROMPT, ScriptedLLMProvider, text_turn, tool_turn


def open_turn(text: str = "What causes chest pain?") -> tuple[ConversationState, Conversation]:
    state = ConversationState(Conversation(conversation_id="c"))
    before = state.get()
    state.update(before.append(Message.user(text)))
    return state, before


def make_generator(llm: ScriptedLLMProvider, **kwargs) -> ResponseGenerator:
    kwargs.setdefault("tool_render_delay", 0)
    return ResponseGenerator(llm, system_prompt=SYSTEM_PROMPT, **kwargs)


class TestToChatMessages:
    """Tests for log-to-provider conversion."""

    def test_text_messages(self):
        chat = to_chat_messages([Message.user("q"), Message.assistant("a")])

        assert [(m.role, m.content) for m in chat] == [("user", "q"), ("assistant", "a")]

    def test_tool_messages(self):
        args = {"answer": "a", "relatedQuestions": []}
        chat = to_chat_messages([
            Message(role="assistant", content=[ToolCallPart(tool_name=TOOL_NAME, call_id="c1", args=args)]),
            Message(role="tool", content=[ToolResultPart(tool_name=TOOL_NAME, call_id="c1", result=args)]),
        ])

        assert chat[0].role == "assistant"
        assert chat[0].tool_calls[0].call_id == "c1"
        assert chat[0].tool_calls[0].arguments == args
        assert chat[1].role == "tool"
        assert chat[1].tool_results[0].result == args


class TestAnswerTool:
    def test_tool_spec(self):
        assert ANSWER_TOOL.name == "answer-with-related-questions"
        assert "relatedQuestions" in ANSWER_TOOL.parameters_schema["properties"]


class TestTextTurn:
    """Text state: deltas stream into a live handle."""

    @pytest.mark.asyncio
    async def test_text_turn_appends_one_assistant_message(self):
        llm = ScriptedLLMProvider([text_turn("Angina ", "is ", "common.")])
        state, _ = open_turn()

        unit = make_generator(llm).start(state, rollback_to=Conversation(conversation_id="c"))
        result = await unit.task

        messages = state.get().messages
        assert [m.role for m in messages] == ["user", "assistant"]
        assert messages[-1].text == "Angina is common."
        assert result.messages == [messages[-1]]
        assert not result.used_tool
        assert result.usage == {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15}
        assert state.phase is TurnPhase.SETTLED

    @pytest.mark.asyncio
    async def test_live_handle_sees_every_delta(self):
        llm = ScriptedLLMProvider([text_turn("a", "b", "c")])
        state, before = open_turn()
        seen: list[str] = []

        unit = make_generator(llm).start(state, rollback_to=before)
        ui = unit.display
        assert isinstance(ui, StreamableUI)
        assert isinstance(ui.value, SpinnerMessage)

        def on_display(node):
            if isinstance(node, BotMessage) and node.is_streaming:
                node.content.subscribe(seen.append)

        ui.subscribe(on_display)
        await unit.task

        assert seen == ["a", "ab", "abc", "abc"]
        assert ui.is_done
        assert isinstance(ui.value, BotMessage)
        assert ui.value.text == "abc"
        assert not ui.value.is_streaming

    @pytest.mark.asyncio
    async def test_empty_stream_settles_empty_text(self):
        llm = ScriptedLLMProvider([[]])
        state, before = open_turn()

        await make_generator(llm).start(state, rollback_to=before).task

        assert state.get().messages[-1].text == ""

    @pytest.mark.asyncio
    async def test_tool_call_after_text_is_ignored(self):
        llm = ScriptedLLMProvider([text_turn("plain answer") + tool_turn()])
        state, before = open_turn()
        logs: list[tuple[str, str, str]] = []
        generator = make_generator(llm)
        generator.set_debug_callback(lambda *entry: logs.append(entry))

        result = await generator.start(state, rollback_to=before).task

        assert not result.used_tool
        assert len(state.get().messages) == 2
        assert any(level == "warning" for level, _, _ in logs)

    @pytest.mark.asyncio
    async def test_request_carries_system_prompt_tool_and_limit(self):
        llm = ScriptedLLMProvider([text_turn("ok")])
        state, before = open_turn()

        await make_generator(llm, max_tokens=256).start(state, rollback_to=before).task

        call = llm.calls[0]
        assert call["system"] == SYSTEM_PROMPT
        assert call["tools"] == [ANSWER_TOOL]
        assert call["max_tokens"] == 256
        assert [(m.role, m.content) for m in call["messages"]] == [("user", "What causes chest pain?")]


class TestToolTurn:
    """Tool state: placeholder, delay, then the call/result pair."""

    @pytest.mark.asyncio
    async def test_tool_turn_appends_pair(self):
        llm = ScriptedLLMProvider([tool_turn(call_id="call_9")])
        state, before = open_turn()

        unit = make_generator(llm).start(state, rollback_to=before)
        result = await unit.task

        messages = state.get().messages
        assert [m.role for m in messages] == ["user", "assistant", "tool"]
        call, tool = messages[1].tool_calls[0], messages[2].tool_results[0]
        assert call.call_id == tool.call_id == "call_9"
        assert call.tool_name == tool.tool_name == TOOL_NAME
        assert tool.result["answer"] == "Common causes include..."
        assert len(tool.result["relatedQuestions"]) == 2
        assert result.used_tool
        assert has_valid_tool_pairing(messages)

        card = unit.current
        assert isinstance(card, AnswerCard)
        assert [r.question for r in card.related_questions] == [
            "Is it an emergency?",
            "What tests are used?",
        ]

    @pytest.mark.asyncio
    async def test_missing_call_id_is_generated(self):
        llm = ScriptedLLMProvider([tool_turn(call_id=None)])
        state, before = open_turn()

        await make_generator(llm).start(state, rollback_to=before).task

        call_id = state.get().messages[1].tool_calls[0].call_id
        assert call_id
        assert state.get().messages[2].tool_results[0].call_id == call_id

    @pytest.mark.asyncio
    async def test_placeholder_visible_during_delay(self):
        llm = ScriptedLLMProvider([tool_turn()])
        state, before = open_turn()
        shown: list[str] = []

        unit = make_generator(llm, tool_render_delay=0.05).start(state, rollback_to=before)
        unit.display.subscribe(lambda node: shown.append(type(node).__name__))

        # Log is not touched until the delay elapses
        while "AnswerSkeleton" not in shown:
            await asyncio.sleep(0.001)
        assert len(state.get().messages) == 1

        await unit.task
        assert shown == ["AnswerSkeleton", "AnswerCard"]

    @pytest.mark.asyncio
    async def test_second_tool_call_is_ignored(self):
        llm = ScriptedLLMProvider([tool_turn(call_id="first") + tool_turn(call_id="second")])
        state, before = open_turn()

        await make_generator(llm).start(state, rollback_to=before).task

        messages = state.get().messages
        assert len(messages) == 3
        assert messages[1].tool_calls[0].call_id == "first"

    @pytest.mark.asyncio
    async def test_text_after_tool_call_is_ignored(self):
        llm = ScriptedLLMProvider([tool_turn() + [TextDelta(text="extra")]])
        state, before = open_turn()

        result = await make_generator(llm).start(state, rollback_to=before).task

        assert result.used_tool
        assert len(state.get().messages) == 3


class TestFailedTurn:
    """Failures roll the log back to the pre-turn snapshot."""

    @pytest.mark.asyncio
    async def test_malformed_tool_arguments(self):
        llm = ScriptedLLMProvider([tool_turn(questions=("only one",))])
        state, before = open_turn()

        unit = make_generator(llm).start(state, rollback_to=before)
        with pytest.raises(ToolArgumentsError):
            await unit.task

        assert state.get() == before
        assert state.phase is TurnPhase.FAILED
        assert isinstance(unit.display.exception, ToolArgumentsError)

    @pytest.mark.asyncio
    async def test_unknown_tool(self):
        llm = ScriptedLLMProvider([tool_turn(tool_name="get-weather")])
        state, before = open_turn()

        unit = make_generator(llm).start(state, rollback_to=before)
        with pytest.raises(UnknownToolError):
            await unit.task

        assert state.get() == before

    @pytest.mark.asyncio
    async def test_stream_interruption(self):
        llm = ScriptedLLMProvider([text_turn("partial ") + [ConnectionError("reset by peer")]])
        state, before = open_turn()

        unit = make_generator(llm).start(state, rollback_to=before)
        with pytest.raises(ModelStreamError) as exc_info:
            await unit.task

        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert state.get() == before
        assert unit.display.is_done
        # Partial text stays visible but was never appended
        assert isinstance(unit.current, BotMessage)
        assert unit.current.text == "partial "

    @pytest.mark.asyncio
    async def test_stream_timeout(self):
        llm = ScriptedLLMProvider([text_turn("never")], gate=asyncio.Event())
        state, before = open_turn()

        unit = make_generator(llm, stream_timeout=0.01).start(state, rollback_to=before)
        with pytest.raises(StreamTimeoutError):
            await unit.task

        assert state.get() == before

    @pytest.mark.asyncio
    async def test_cancellation_rolls_back(self):
        llm = ScriptedLLMProvider([text_turn("never")], gate=asyncio.Event())
        state, before = open_turn()

        unit = make_generator(llm).start(state, rollback_to=before)
        await asyncio.sleep(0)
        unit.task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await unit.task

        assert state.get() == before
        assert state.phase is TurnPhase.FAILED

    @pytest.mark.asyncio
    async def test_cancellation_before_first_step_rolls_back(self):
        llm = ScriptedLLMProvider([text_turn("never")])
        state, before = open_turn()

        unit = make_generator(llm).start(state, rollback_to=before)
        unit.task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await unit.task

        assert state.get() == before
        assert state.phase is TurnPhase.FAILED
        assert isinstance(unit.display.exception, asyncio.CancelledError)
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_cancellation_while_saving_keeps_settled_log(self):
        saving, release = asyncio.Event(), asyncio.Event()
        saved: list[Conversation] = []

        async def slow_save(conversation: Conversation) -> None:
            saving.set()
            await release.wait()
            saved.append(conversation)

        state = ConversationState(Conversation(conversation_id="c"), on_settle=slow_save)
        before = state.get()
        state.update(before.append(Message.user("q")))

        unit = make_generator(ScriptedLLMProvider([text_turn("answer")])).start(state, rollback_to=before)
        await saving.wait()
        unit.task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await unit.task

        assert [m.text for m in state.get().messages] == ["q", "answer"]
        assert state.phase is TurnPhase.SETTLED
        assert unit.display.is_done
        assert unit.display.exception is None

        release.set()
        for _ in range(10):
            if saved:
                break
            await asyncio.sleep(0)
        assert saved == [state.get()]
