from .base import LLMProvider
from .factory import create_llm_provider
from .models import (
    ChatMessage,
    StreamEvent,
    StreamingResponse,
    TextDelta,
    ToolCallEntry,
    ToolCallRequest,
    ToolResultEntry,
    ToolSpec,
)
from .providers import AnthropicProvider, OpenAIProvider

__all__ = [
    "LLMProvider",
    "create_llm_provider",
    "ChatMessage",
    "StreamEvent",
    "StreamingResponse",
    "TextDelta",
    "ToolCallEntry",
    "ToolCallRequest",
    "ToolResultEntry",
    "ToolSpec",
    "AnthropicProvider",
    "OpenAIProvider",
]
