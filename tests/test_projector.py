"""Tests for projecting a message log into render units."""
from hypothesis import given
from hypothesis import strategies as st

from cardioqa.config import TOOL_NAME
from cardioqa.conversation import (
    AnswerCard,
    BotMessage,
    Conversation,
    Message,
    ToolCallPart,
    ToolResultPart,
    UserMessage,
    project_messages,
    project_render_state,
)

PAYLOAD = {
    "answer": "Common causes include...",
    "relatedQuestions": [
        {"question": "Is it an emergency?"},
        {"question": "What tests are used?"},
    ],
}


def tool_pair(call_id: str = "c1", tool_name: str = TOOL_NAME, payload: dict | None = None) -> list[Message]:
    payload = PAYLOAD if payload is None else payload
    return [
        Message(role="assistant", content=[ToolCallPart(tool_name=tool_name, call_id=call_id, args=payload)]),
        Message(role="tool", content=[ToolResultPart(tool_name=tool_name, call_id=call_id, result=payload)]),
    ]


class TestProjector:
    """Example-based projection checks."""

    def test_empty_log(self):
        assert project_render_state(Conversation()) == []

    def test_text_turns(self):
        log = [Message.user("What causes chest pain?"), Message.assistant("Many things.")]
        units = project_messages("c", log)

        assert [type(u.display) for u in units] == [UserMessage, BotMessage]
        assert units[0].display.text == "What causes chest pain?"
        assert units[1].display.text == "Many things."

    def test_system_messages_hidden(self):
        log = [Message(role="system", content="sys"), Message.user("hi")]
        units = project_messages("c", log)

        assert len(units) == 1
        assert isinstance(units[0].display, UserMessage)

    def test_tool_turn_renders_once(self):
        log = [Message.user("What causes chest pain?"), *tool_pair()]
        units = project_messages("c", log)

        assert len(units) == 2
        card = units[-1].display
        assert isinstance(card, AnswerCard)
        assert card.answer == "Common causes include..."
        assert [r.question for r in card.related_questions] == [
            "Is it an emergency?",
            "What tests are used?",
        ]

    def test_unknown_tool_renders_empty_unit(self):
        log = [Message.user("q"), *tool_pair(tool_name="weather", payload={"city": "Oslo"})]
        units = project_messages("c", log)

        assert len(units) == 2
        assert units[-1].display is None

    def test_malformed_stored_payload_renders_empty_unit(self):
        log = [Message.user("q"), *tool_pair(payload={"answer": "only"})]

        assert project_messages("c", log)[-1].display is None

    def test_one_unit_per_tool_result(self):
        results = Message(role="tool", content=[
            ToolResultPart(tool_name=TOOL_NAME, call_id="a", result=PAYLOAD),
            ToolResultPart(tool_name=TOOL_NAME, call_id="b", result=PAYLOAD),
        ])
        calls = Message(role="assistant", content=[
            ToolCallPart(tool_name=TOOL_NAME, call_id="a", args=PAYLOAD),
            ToolCallPart(tool_name=TOOL_NAME, call_id="b", args=PAYLOAD),
        ])
        units = project_messages("c", [calls, results])

        assert [u.id for u in units] == ["c-1-0", "c-1-1"]

    def test_unit_ids_follow_log_position(self):
        log = [Message.user("a"), Message.assistant("b")]

        assert [u.id for u in project_messages("conv", log)] == ["conv-0", "conv-1"]


text_logs = st.lists(
    st.tuples(st.sampled_from(["user", "assistant"]), st.text(max_size=40)),
    max_size=12,
)


def build_log(pairs: list[tuple[str, str]]) -> list[Message]:
    return [Message(role=role, content=text) for role, text in pairs]


class TestProjectorProperties:
    """Property tests for determinism and round-trip."""

    @given(text_logs, st.booleans())
    def test_projection_is_deterministic(self, pairs, with_tool_turn):
        log = build_log(pairs)
        if with_tool_turn:
            log.extend(tool_pair())
        conversation = Conversation(conversation_id="c", messages=log)

        assert project_render_state(conversation) == project_render_state(conversation)

    @given(text_logs)
    def test_text_logs_round_trip(self, pairs):
        units = project_messages("c", build_log(pairs))
        recovered = [
            ("user" if isinstance(u.display, UserMessage) else "assistant", u.display.text)
            for u in units
        ]

        assert recovered == pairs
