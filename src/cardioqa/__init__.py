"""
CardioQA: a streaming cardiology Q&A assistant with related-question follow-ups.

This package follows Parnas's information hiding principles,
where each module hides a specific design decision.
"""

__version__ = "0.1.0"

from .conversation import (
    ChatSession,
    Conversation,
    Message,
    OptimisticSubmitController,
    RenderState,
    RenderUnit,
    project_render_state,
)

__all__ = [
    "ChatSession",
    "Conversation",
    "Message",
    "OptimisticSubmitController",
    "RenderState",
    "RenderUnit",
    "project_render_state",
]
