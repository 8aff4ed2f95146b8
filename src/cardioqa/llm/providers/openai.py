import json
from collections.abc import AsyncIterator, Callable
from typing import Any

from openai import AsyncOpenAI

from ...exceptions import ToolArgumentsError
from ..base import LLMProvider
from ..models import ChatMessage, StreamEvent, StreamingResponse, TextDelta, ToolCallRequest, ToolSpec


def _messages_to_openai_format(
    messages: list[ChatMessage],
    system: str | None = None
) -> list[dict[str, Any]]:
    """Convert chat messages to Chat Completions format.

    - assistant tool calls become a ``tool_calls`` array with JSON-encoded arguments
    - each tool result becomes its own 'tool' message keyed by ``tool_call_id``

    Returns:
        List of message dicts for the Chat Completions API
    """
    openai_messages: list[dict[str, Any]] = []
    if system:
        openai_messages.append({"role": "system", "content": system})

    for msg in messages:
        if msg.tool_calls:
            openai_messages.append({
                "role": "assistant",
                "content": msg.content or None,
                "tool_calls": [
                    {
                        "id": call.call_id,
                        "type": "function",
                        "function": {
                            "name": call.tool_name,
                            "arguments": json.dumps(call.arguments),
                        },
                    }
                    for call in msg.tool_calls
                ],
            })
        elif msg.tool_results:
            for result in msg.tool_results:
                openai_messages.append({
                    "role": "tool",
                    "tool_call_id": result.call_id,
                    "content": json.dumps(result.result),
                })
        else:
            openai_messages.append({"role": msg.role, "content": msg.content})

    return openai_messages


def _tools_to_openai_format(tools: list[ToolSpec]) -> list[dict[str, Any]]:
    return [
        {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.parameters_schema,
            },
        }
        for tool in tools
    ]


def _decode_arguments(tool_name: str, raw: str) -> dict[str, Any]:
    """Decode streamed tool arguments into a JSON object."""
    try:
        arguments = json.loads(raw or "{}")
    except json.JSONDecodeError as e:
        raise ToolArgumentsError(f"Tool '{tool_name}' returned invalid JSON arguments: {e}") from e
    if not isinstance(arguments, dict):
        raise ToolArgumentsError(f"Tool '{tool_name}' arguments must be a JSON object")
    return arguments


class OpenAIProvider(LLMProvider):
    """OpenAI LLM provider implementation.

    Hidden design decisions:
    - OpenAI API client initialization
    - Message format conversion (tool calls and tool results)
    - Reassembly of tool-call fragments spread over stream chunks
    - Authentication mechanism
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-2024-05-13",
        base_url: str | None = None,
        organization: str | None = None,
        project: str | None = None,
        **client_kwargs: Any
    ):
        """Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key
            model: Default model to use
            base_url: Optional custom API base URL
            organization: Optional organization ID
            project: Optional project ID
            **client_kwargs: Additional kwargs for AsyncOpenAI client
        """
        self._model = model
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            organization=organization,
            project=project,
            **client_kwargs
        )

    @property
    def model(self) -> str:
        """Get the default model name."""
        return self._model

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
        """Generate a streaming chat completion using OpenAI.

        Args:
            messages: Conversation history
            system: System instruction
            tools: Tools the model may call
            model: Model to use (overrides default)
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate
            **kwargs: Additional OpenAI-specific parameters

        Returns:
            StreamingResponse that yields stream events and captures usage info
        """
        request_params: dict[str, Any] = {
            "model": model or self._model,
            "messages": _messages_to_openai_format(messages, system),
            "temperature": temperature,
            "stream": True,
            "stream_options": {"include_usage": True},
            **kwargs,
        }
        if max_tokens is not None:
            request_params["max_tokens"] = max_tokens
        if tools:
            request_params["tools"] = _tools_to_openai_format(tools)

        response: StreamingResponse | None = None

        def _set_usage(usage: dict[str, Any]) -> None:
            if response is not None:
                response.set_usage(usage)

        response = StreamingResponse(self._chat_stream_generator(request_params, _set_usage))
        return response

    async def _chat_stream_generator(
        self,
        request_params: dict[str, Any],
        set_usage: Callable[[dict[str, Any]], None],
    ) -> AsyncIterator[StreamEvent]:
        """Internal generator for Chat Completions streaming with usage capture."""
        stream = await self._client.chat.completions.create(**request_params)

        # Tool call fragments keyed by their index in the choice
        pending: dict[int, dict[str, str]] = {}

        async for chunk in stream:
            # Check for usage in the final chunk
            if chunk.usage is not None:
                set_usage({
                    "prompt_tokens": chunk.usage.prompt_tokens,
                    "completion_tokens": chunk.usage.completion_tokens,
                    "total_tokens": chunk.usage.total_tokens,
                })
            if not chunk.choices:
                continue

            delta = chunk.choices[0].delta
            if delta.content:
                yield TextDelta(text=delta.content)

            for fragment in delta.tool_calls or []:
                entry = pending.setdefault(fragment.index, {"id": "", "name": "", "arguments": ""})
                if fragment.id:
                    entry["id"] = fragment.id
                if fragment.function is not None:
                    if fragment.function.name:
                        entry["name"] += fragment.function.name
                    if fragment.function.arguments:
                        entry["arguments"] += fragment.function.arguments

        for index in sorted(pending):
            entry = pending[index]
            yield ToolCallRequest(
                call_id=entry["id"] or None,
                tool_name=entry["name"],
                arguments=_decode_arguments(entry["name"], entry["arguments"]),
            )

    async def close(self) -> None:
        """Close the OpenAI client.

        Note: Uses the OpenAI SDK's async context manager for proper cleanup.
        See: https://github.com/openai/openai-python#async-usage
        """
        await self._client.close()
