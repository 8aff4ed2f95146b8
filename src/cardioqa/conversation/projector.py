"""Projection of a persisted message log into render units.

Used to rehydrate a reopened conversation. The projection is pure: the
same log always yields equal render units.
"""

from collections.abc import Sequence

from pydantic import ValidationError

from ..config import TOOL_NAME
from .models import AnswerWithRelatedQuestions, Conversation, Message, ToolResultPart
from .render import AnswerCard, BotMessage, RenderUnit, UserMessage


def _render_tool_result(part: ToolResultPart) -> AnswerCard | None:
    """Render a tool result, or nothing for tools this client does not know."""
    if part.tool_name != TOOL_NAME:
        return None
    try:
        payload = AnswerWithRelatedQuestions.model_validate(part.result)
    except ValidationError:
        return None
    return AnswerCard(answer=payload.answer, related_questions=list(payload.related_questions))


def project_messages(conversation_id: str, messages: Sequence[Message]) -> list[RenderUnit]:
    """Map a message log to render units.

    - system messages are hidden
    - user and assistant text each produce one unit
    - assistant tool-call messages produce nothing (the tool message shows the turn)
    - tool messages produce one unit per tool-result part

    Unit ids are derived from the message position so repeated projections
    of the same log agree.
    """
    units: list[RenderUnit] = []

    for index, message in enumerate(messages):
        unit_id = f"{conversation_id}-{index}"

        if message.role == "system":
            continue

        if message.role == "user":
            units.append(RenderUnit(id=unit_id, display=UserMessage(text=message.text or "")))

        elif message.role == "assistant":
            if message.text is not None:
                units.append(RenderUnit(id=unit_id, display=BotMessage(content=message.text)))

        elif message.role == "tool":
            results = message.tool_results
            for part_index, part in enumerate(results):
                part_id = unit_id if len(results) == 1 else f"{unit_id}-{part_index}"
                units.append(RenderUnit(id=part_id, display=_render_tool_result(part)))

    return units


def project_render_state(conversation: Conversation) -> list[RenderUnit]:
    """Project a conversation snapshot into its render units."""
    return project_messages(conversation.conversation_id, conversation.messages)
