"""Anthropic Claude LLM provider implementation.

Uses the official Anthropic Python SDK for async streaming chat completions.
Reference: https://github.com/anthropics/anthropic-sdk-python
"""

import json
from collections.abc import AsyncIterator, Callable
from typing import Any

from anthropic import AsyncAnthropic

from ...exceptions import ToolArgumentsError
from ..base import LLMProvider
from ..models import ChatMessage, StreamEvent, StreamingResponse, TextDelta, ToolCallRequest, ToolSpec


def _messages_to_anthropic_format(messages: list[ChatMessage]) -> tuple[str | None, list[dict[str, Any]]]:
    """Convert chat messages to Anthropic format.

    System messages are lifted out; tool calls become ``tool_use`` blocks on
    the assistant turn and tool results become ``tool_result`` blocks on a
    user turn.

    Returns:
        Tuple of (system text or None, list of message dicts)
    """
    system_parts: list[str] = []
    anthropic_messages: list[dict[str, Any]] = []

    for msg in messages:
        if msg.role == "system":
            system_parts.append(msg.content)
        elif msg.tool_calls:
            anthropic_messages.append({
                "role": "assistant",
                "content": [
                    {
                        "type": "tool_use",
                        "id": call.call_id,
                        "name": call.tool_name,
                        "input": call.arguments,
                    }
                    for call in msg.tool_calls
                ],
            })
        elif msg.tool_results:
            anthropic_messages.append({
                "role": "user",
                "content": [
                    {
                        "type": "tool_result",
                        "tool_use_id": result.call_id,
                        "content": json.dumps(result.result),
                    }
                    for result in msg.tool_results
                ],
            })
        else:
            anthropic_messages.append({"role": msg.role, "content": msg.content})

    system = "\n\n".join(system_parts) if system_parts else None
    return system, anthropic_messages


def _tools_to_anthropic_format(tools: list[ToolSpec]) -> list[dict[str, Any]]:
    return [
        {
            "name": tool.name,
            "description": tool.description,
            "input_schema": tool.parameters_schema,
        }
        for tool in tools
    ]


class AnthropicProvider(LLMProvider):
    """Anthropic Claude LLM provider implementation.

    Hidden design decisions:
    - Anthropic API client initialization
    - Message format conversion (system, tool_use and tool_result blocks)
    - Reassembly of streamed tool input JSON
    - Authentication mechanism
    """

    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-20250514",
        base_url: str | None = None,
        **client_kwargs: Any
    ):
        """Initialize Anthropic provider.

        Args:
            api_key: Anthropic API key
            model: Default model to use (default: claude-sonnet-4-20250514)
            base_url: Optional custom API base URL
            **client_kwargs: Additional kwargs for AsyncAnthropic client
        """
        self._model = model
        self._client = AsyncAnthropic(
            api_key=api_key,
            base_url=base_url,
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
        """Generate a streaming chat completion using Anthropic Claude.

        Args:
            messages: Conversation history
            system: System instruction (merged with any system messages)
            tools: Tools the model may call
            model: Model to use (overrides default)
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate (default: 4096)
            **kwargs: Additional Anthropic-specific parameters

        Returns:
            StreamingResponse that yields stream events and captures usage info
        """
        inline_system, anthropic_messages = _messages_to_anthropic_format(messages)
        system_message = "\n\n".join(part for part in (system, inline_system) if part)

        request_params: dict[str, Any] = {
            "model": model or self._model,
            "messages": anthropic_messages,
            "temperature": temperature,
            "max_tokens": max_tokens or 4096,  # Anthropic requires max_tokens
            **kwargs
        }
        if system_message:
            request_params["system"] = system_message
        if tools:
            request_params["tools"] = _tools_to_anthropic_format(tools)

        response: StreamingResponse | None = None

        def _set_usage(usage: dict[str, Any]) -> None:
            if response is not None:
                response.set_usage(usage)

        response = StreamingResponse(self._stream_generator(request_params, _set_usage))
        return response

    async def _stream_generator(
        self,
        request_params: dict[str, Any],
        set_usage: Callable[[dict[str, Any]], None],
    ) -> AsyncIterator[StreamEvent]:
        """Internal generator that yields events and captures usage."""
        input_tokens = 0
        output_tokens = 0
        # tool_use blocks keyed by content block index
        tool_blocks: dict[int, dict[str, str]] = {}

        async with self._client.messages.stream(**request_params) as stream:
            async for event in stream:
                event_type = getattr(event, "type", None)
                # message_start contains input_tokens
                if event_type == "message_start":
                    if hasattr(event, "message") and hasattr(event.message, "usage"):
                        input_tokens = event.message.usage.input_tokens
                # message_delta contains output_tokens (cumulative)
                elif event_type == "message_delta":
                    if hasattr(event, "usage") and hasattr(event.usage, "output_tokens"):
                        output_tokens = event.usage.output_tokens
                elif event_type == "content_block_start":
                    block = event.content_block
                    if getattr(block, "type", None) == "tool_use":
                        tool_blocks[event.index] = {"id": block.id, "name": block.name, "json": ""}
                elif event_type == "content_block_delta":
                    delta = event.delta
                    delta_type = getattr(delta, "type", None)
                    if delta_type == "text_delta" and delta.text:
                        yield TextDelta(text=delta.text)
                    elif delta_type == "input_json_delta" and event.index in tool_blocks:
                        tool_blocks[event.index]["json"] += delta.partial_json
                elif event_type == "content_block_stop" and event.index in tool_blocks:
                    block = tool_blocks.pop(event.index)
                    yield ToolCallRequest(
                        call_id=block["id"],
                        tool_name=block["name"],
                        arguments=self._decode_input(block["name"], block["json"]),
                    )

            # Set usage after streaming completes
            set_usage({
                "prompt_tokens": input_tokens,
                "completion_tokens": output_tokens,
                "total_tokens": input_tokens + output_tokens,
            })

    @staticmethod
    def _decode_input(tool_name: str, raw: str) -> dict[str, Any]:
        try:
            arguments = json.loads(raw or "{}")
        except json.JSONDecodeError as e:
            raise ToolArgumentsError(f"Tool '{tool_name}' returned invalid JSON input: {e}") from e
        if not isinstance(arguments, dict):
            raise ToolArgumentsError(f"Tool '{tool_name}' input must be a JSON object")
        return arguments

    async def close(self) -> None:
        """Close the Anthropic client."""
        await self._client.close()
