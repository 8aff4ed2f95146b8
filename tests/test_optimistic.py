"""Tests for the optimistic submit controller."""
import asyncio

import pytest

from cardioqa.conversation import (
    AnswerCard,
    BotMessage,
    OptimisticSubmitController,
    UserMessage,
)
from cardioqa.exceptions import ToolArgumentsError, TurnInProgressError

from conftest import text_turn, tool_turn


class TestOptimisticSubmit:
    """Ordering and routing through the session."""

    @pytest.mark.asyncio
    async def test_provisional_unit_precedes_response(self, llm, session):
        llm.turns.append(text_turn("answer"))
        controller = OptimisticSubmitController(session)

        response = await controller.submit("What causes chest pain?")
        await response.task

        units = list(session.ui_state)
        assert len(units) == 2
        assert isinstance(units[0].display, UserMessage)
        assert units[0].display.text == "What causes chest pain?"
        assert units[1] is response
        assert isinstance(units[1].current, BotMessage)

    @pytest.mark.asyncio
    async def test_provisional_unit_visible_before_model_responds(self, llm, session):
        gate = asyncio.Event()
        llm.gate = gate
        llm.turns.append(text_turn("slow answer"))
        controller = OptimisticSubmitController(session)
        appended: list = []
        session.ui_state.subscribe(appended.append)

        response = await controller.submit("hi")

        # Both units are in place while the model has produced nothing
        assert [type(u.current).__name__ for u in appended] == ["UserMessage", "SpinnerMessage"]
        assert not response.task.done()

        gate.set()
        await response.task
        assert session.ui_state.index_of(appended[0].id) < session.ui_state.index_of(response.id)

    @pytest.mark.asyncio
    async def test_never_touches_log_directly(self, llm, session):
        llm.turns.append(text_turn("answer"))
        controller = OptimisticSubmitController(session)

        response = await controller.submit("hi")
        assert [m.role for m in session.messages] == ["user"]
        await response.task

        assert [m.role for m in session.messages] == ["user", "assistant"]

    @pytest.mark.asyncio
    async def test_related_question_same_as_typed(self, llm, session):
        """Clicking a related question is a fresh submission of its text."""
        llm.turns.extend([tool_turn(), text_turn("Usually, yes.")])
        controller = OptimisticSubmitController(session)

        first = await controller.submit("What causes chest pain?")
        await first.task
        card = first.current
        assert isinstance(card, AnswerCard)

        second = await controller.select_related_question(card.related_questions[0].question)
        await second.task

        assert [m.role for m in session.messages] == ["user", "assistant", "tool", "user", "assistant"]
        assert session.messages[3].text == "Is it an emergency?"
        assert len(session.ui_state) == 4
        assert session.ui_state[2].display.text == "Is it an emergency?"

    @pytest.mark.asyncio
    async def test_blank_input_adds_nothing(self, session):
        controller = OptimisticSubmitController(session)

        with pytest.raises(ValueError):
            await controller.submit("  ")

        assert len(session.ui_state) == 0

    @pytest.mark.asyncio
    async def test_busy_session_adds_nothing(self, llm, session):
        gate = asyncio.Event()
        llm.gate = gate
        llm.turns.append(text_turn("answer"))
        controller = OptimisticSubmitController(session)

        await controller.submit("first")
        with pytest.raises(TurnInProgressError):
            await controller.submit("second")

        assert len(session.ui_state) == 2
        gate.set()
        await session.wait()

    @pytest.mark.asyncio
    async def test_failed_turn_keeps_provisional_unit(self, llm, session):
        llm.turns.append(tool_turn(questions=("one",)))
        controller = OptimisticSubmitController(session)

        response = await controller.submit("q")
        with pytest.raises(ToolArgumentsError):
            await response.task

        assert session.messages == []
        assert len(session.ui_state) == 2
        assert response.display.exception is not None
