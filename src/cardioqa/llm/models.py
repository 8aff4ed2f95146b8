from collections.abc import AsyncIterator
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class TextDelta(BaseModel):
    """An incremental fragment of assistant text."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text-delta"] = "text-delta"
    text: str


class ToolCallRequest(BaseModel):
    """A complete tool invocation decided by the model.

    ``arguments`` is the decoded JSON object exactly as the model produced
    it; schema validation is the caller's responsibility.
    """

    model_config = ConfigDict(frozen=True)

    type: Literal["tool-call"] = "tool-call"
    call_id: str | None = Field(default=None, description="Provider-assigned call id, if any")
    tool_name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


StreamEvent = TextDelta | ToolCallRequest


class StreamingResponse:
    """Wrapper for streaming LLM responses that captures usage info.

    Acts as an async iterator of stream events (text deltas and tool calls)
    while storing token usage that becomes available at the end of the stream.

    Usage:
        stream = await provider.chat_completion_stream(messages, tools=[spec])
        async for event in stream:
            ...
        # After iteration, usage is available
        print(stream.usage)  # {"prompt_tokens": 100, "completion_tokens": 50, ...}
    """

    def __init__(self, async_iter: AsyncIterator[StreamEvent]):
        """Initialize with an async iterator of stream events.

        Args:
            async_iter: Async iterator yielding stream events
        """
        self._iter = async_iter
        self._usage: dict[str, Any] | None = None

    @property
    def usage(self) -> dict[str, Any] | None:
        """Get token usage info (available after iteration completes)."""
        return self._usage

    def set_usage(self, usage: dict[str, Any]) -> None:
        """Set token usage info (called by provider at end of stream)."""
        self._usage = usage

    def __aiter__(self) -> "StreamingResponse":
        """Return self as async iterator."""
        return self

    async def __anext__(self) -> StreamEvent:
        """Get next event from the underlying iterator."""
        return await self._iter.__anext__()


class ToolSpec(BaseModel):
    """A tool the model may invoke instead of answering in free text."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    parameters_schema: dict[str, Any] = Field(description="JSON schema of the tool arguments")


class ToolCallEntry(BaseModel):
    """A tool call carried by an assistant chat message."""

    model_config = ConfigDict(frozen=True)

    call_id: str
    tool_name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class ToolResultEntry(BaseModel):
    """A tool result carried by a tool chat message."""

    model_config = ConfigDict(frozen=True)

    call_id: str
    tool_name: str
    result: dict[str, Any] = Field(default_factory=dict)


class ChatMessage(BaseModel):
    """Represents a chat message sent to a provider.

    Plain turns carry ``content``; tool turns carry ``tool_calls`` (assistant)
    or ``tool_results`` (tool).
    """

    model_config = ConfigDict(frozen=True)

    role: str = Field(description="Role of the message sender: 'system', 'user', 'assistant' or 'tool'")
    content: str = Field(default="", description="Text content of the message")
    tool_calls: list[ToolCallEntry] = Field(default_factory=list)
    tool_results: list[ToolResultEntry] = Field(default_factory=list)
