from abc import ABC, abstractmethod
from typing import Any

from .models import ChatMessage, StreamingResponse, ToolSpec


class LLMProvider(ABC):
    """Streaming chat model with optional tool calling.

    Hides which vendor answers a turn. A provider turns the conversation
    (plus system instruction and tool specs) into one vendor request and
    normalizes the reply into ``TextDelta`` and ``ToolCallRequest`` events.
    Tool-call fragments spread across chunks are reassembled before they
    are yielded, so callers only ever see complete calls.

    Usable as an async context manager:
        async with create_llm_provider("openai", api_key=key) as llm:
            stream = await llm.chat_completion_stream(messages, tools=[spec])
    """

    @property
    @abstractmethod
    def model(self) -> str:
        """Model used when a request does not name one."""

    @abstractmethod
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
        """Start one streamed model turn.

        Args:
            messages: Conversation so far, oldest first
            system: System instruction
            tools: Tools the model may call instead of answering in text
            model: Override for the default model
            temperature: Sampling temperature
            max_tokens: Output token cap
            **kwargs: Passed through to the vendor request

        Returns:
            StreamingResponse of stream events; ``usage`` is set once the
            stream is exhausted
        """

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying HTTP client."""

    async def __aenter__(self) -> "LLMProvider":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        try:
            await self.close()
        except RuntimeError as e:
            # httpx may complain when the loop is already gone at shutdown
            if "Event loop is closed" not in str(e):
                raise
