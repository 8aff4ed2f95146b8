"""Conversation core for cardioqa.

Module structure (Parnas principle - each module hides a design decision):
- models.py: Message log data structures (the persisted AI state)
- invariants.py: Structural checks over a log (tool-call/result pairing)
- render.py: Render units, display nodes and live handles (the UI state)
- state.py: Mutation protocol of the log (idle -> streaming -> settled)
- projector.py: Log to render-unit projection (rehydration)
- generator.py: One streamed model turn, text or tool
- session.py: Per-conversation container and load/save hooks
- optimistic.py: Client-side optimistic submission
"""

from .generator import ANSWER_TOOL, ResponseGenerator, TurnResult, to_chat_messages
from .invariants import find_tool_pairing_violations, has_valid_tool_pairing
from .models import (
    AnswerWithRelatedQuestions,
    Chat,
    Conversation,
    Message,
    RelatedQuestion,
    ToolCallPart,
    ToolResultPart,
    new_id,
)
from .optimistic import OptimisticSubmitController
from .projector import project_messages, project_render_state
from .render import (
    AnswerCard,
    AnswerSkeleton,
    BotMessage,
    RenderState,
    RenderUnit,
    SpinnerMessage,
    StreamableText,
    StreamableUI,
    UserMessage,
    resolve_display,
)
from .session import ChatSession, derive_title
from .state import ConversationState, TurnPhase

__all__ = [
    "ANSWER_TOOL",
    "AnswerCard",
    "AnswerSkeleton",
    "AnswerWithRelatedQuestions",
    "BotMessage",
    "Chat",
    "ChatSession",
    "Conversation",
    "ConversationState",
    "Message",
    "OptimisticSubmitController",
    "RelatedQuestion",
    "RenderState",
    "RenderUnit",
    "ResponseGenerator",
    "SpinnerMessage",
    "StreamableText",
    "StreamableUI",
    "ToolCallPart",
    "ToolResultPart",
    "TurnPhase",
    "TurnResult",
    "UserMessage",
    "derive_title",
    "find_tool_pairing_violations",
    "has_valid_tool_pairing",
    "new_id",
    "project_messages",
    "project_render_state",
    "resolve_display",
    "to_chat_messages",
]
