"""Streaming response generator for a single assistant turn.

Drives one model call over the current message log and keeps the live
render handle and the message log in step:

- Text turns stream deltas into a live text handle, then append one
  assistant message when the stream ends.
- Tool turns validate the structured answer, show a placeholder, wait a
  short fixed delay, then append the tool-call/tool-result pair together.

Exactly one of the two happens per turn. The first stream event decides
which; anything after that which does not fit is ignored.
"""

import asyncio
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from ..config import (
    MAX_OUTPUT_TOKENS,
    TOOL_DESCRIPTION,
    TOOL_NAME,
    TOOL_RENDER_DELAY_SECONDS,
)
from ..exceptions import (
    ModelStreamError,
    StreamTimeoutError,
    ToolArgumentsError,
    TurnError,
    UnknownToolError,
)
from ..llm import (
    ChatMessage,
    LLMProvider,
    StreamingResponse,
    TextDelta,
    ToolCallEntry,
    ToolCallRequest,
    ToolResultEntry,
    ToolSpec,
)
from .models import (
    AnswerWithRelatedQuestions,
    Conversation,
    Message,
    ToolCallPart,
    ToolResultPart,
    new_id,
)
from .render import (
    AnswerCard,
    AnswerSkeleton,
    BotMessage,
    RenderUnit,
    SpinnerMessage,
    StreamableText,
    StreamableUI,
)
from .state import ConversationState, TurnPhase

ANSWER_TOOL = ToolSpec(
    name=TOOL_NAME,
    description=TOOL_DESCRIPTION,
    parameters_schema=AnswerWithRelatedQuestions.model_json_schema(by_alias=True),
)


def to_chat_messages(messages: Sequence[Message]) -> list[ChatMessage]:
    """Convert log messages into provider chat messages."""
    chat_messages: list[ChatMessage] = []
    for message in messages:
        if message.text is not None:
            chat_messages.append(ChatMessage(role=message.role, content=message.text))
        elif message.role == "assistant":
            chat_messages.append(ChatMessage(
                role="assistant",
                tool_calls=[
                    ToolCallEntry(call_id=part.call_id, tool_name=part.tool_name, arguments=part.args)
                    for part in message.tool_calls
                ],
            ))
        else:
            chat_messages.append(ChatMessage(
                role="tool",
                tool_results=[
                    ToolResultEntry(call_id=part.call_id, tool_name=part.tool_name, result=part.result)
                    for part in message.tool_results
                ],
            ))
    return chat_messages


@dataclass
class TurnResult:
    """Outcome of a settled turn.

    Attributes:
        messages: Messages appended to the log by this turn
        used_tool: Whether the turn was answered through the tool
        usage: Token usage reported by the provider, if any
    """

    messages: list[Message] = field(default_factory=list)
    used_tool: bool = False
    usage: dict[str, Any] | None = None


class ResponseGenerator:
    """Produces one assistant turn per call to ``start``.

    Hidden design decisions:
    - Conversion of the log to provider messages
    - The text/tool protocol and when the log is finalized
    - Rollback of the log when a turn fails
    """

    def __init__(
        self,
        llm: LLMProvider,
        system_prompt: str | None = None,
        max_tokens: int = MAX_OUTPUT_TOKENS,
        temperature: float = 0.7,
        tool_render_delay: float = TOOL_RENDER_DELAY_SECONDS,
        stream_timeout: float | None = None,
    ):
        """Initialize the generator.

        Args:
            llm: LLM provider for generation
            system_prompt: Optional custom system instruction (or loaded from prompts/system.txt)
            max_tokens: Maximum output tokens per turn
            temperature: Sampling temperature
            tool_render_delay: Seconds the tool placeholder stays visible before finalizing
            stream_timeout: Seconds to wait for each stream event (None waits forever)
        """
        if system_prompt is None:
            from ..prompts import get_system_prompt
            system_prompt = get_system_prompt()

        self._llm = llm
        self._system_prompt = system_prompt
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._tool_render_delay = tool_render_delay
        self._stream_timeout = stream_timeout
        self._debug_callback: Any | None = None

    @property
    def system_prompt(self) -> str:
        return self._system_prompt

    def set_debug_callback(self, callback: Any) -> None:
        """Set the debug callback for detailed execution logging.

        Args:
            callback: Callable(level: str, component: str, message: str)
        """
        self._debug_callback = callback

    def _debug(self, level: str, component: str, message: str) -> None:
        if self._debug_callback:
            self._debug_callback(level, component, message)

    def start(self, state: ConversationState, rollback_to: Conversation) -> RenderUnit:
        """Start a turn in the background and return its live render unit.

        Args:
            state: Conversation state whose log already ends with the user message
            rollback_to: Snapshot restored if the turn fails

        Returns:
            RenderUnit whose display is a live slot and whose task resolves
            to a TurnResult once the log is settled
        """
        ui = StreamableUI(SpinnerMessage())
        task = asyncio.create_task(self._run(state, rollback_to, ui))
        task.add_done_callback(
            lambda finished: self._cancelled_before_start(finished, state, rollback_to, ui)
        )
        return RenderUnit(id=new_id(), display=ui, task=task)

    def _cancelled_before_start(
        self,
        task: "asyncio.Task[TurnResult]",
        state: ConversationState,
        rollback_to: Conversation,
        ui: StreamableUI,
    ) -> None:
        # A task cancelled before its first step never enters _run's handlers
        if task.cancelled() and state.phase is TurnPhase.STREAMING:
            self._fail(state, rollback_to, ui, asyncio.CancelledError())

    async def _run(
        self,
        state: ConversationState,
        rollback_to: Conversation,
        ui: StreamableUI,
    ) -> TurnResult:
        try:
            return await self._drive(state, ui)
        except TurnError as e:
            self._fail(state, rollback_to, ui, e)
            raise
        except asyncio.CancelledError as e:
            self._fail(state, rollback_to, ui, e)
            raise
        except Exception as e:
            error = ModelStreamError(f"Model stream failed: {e}")
            self._fail(state, rollback_to, ui, error)
            raise error from e

    def _fail(
        self,
        state: ConversationState,
        rollback_to: Conversation,
        ui: StreamableUI,
        error: BaseException,
    ) -> None:
        if state.phase is TurnPhase.SETTLED:
            # Settled turns are kept; only the pending save was interrupted
            self._debug("warning", "LLM", f"Turn interrupted after settling: {error!r}")
            return
        self._debug("error", "LLM", f"Turn failed: {error!r}")
        state.rollback(rollback_to, error)
        if not ui.is_done:
            ui.error(error)

    async def _drive(self, state: ConversationState, ui: StreamableUI) -> TurnResult:
        conversation = state.get()
        self._debug("info", "LLM", f"Requesting turn over {len(conversation.messages)} message(s)")

        stream = await self._llm.chat_completion_stream(
            to_chat_messages(conversation.messages),
            system=self._system_prompt,
            tools=[ANSWER_TOOL],
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )

        text_stream: StreamableText | None = None
        text_parts: list[str] = []
        tool_request: ToolCallRequest | None = None
        answer: AnswerWithRelatedQuestions | None = None

        async for event in self._iter_events(stream):
            if isinstance(event, TextDelta):
                if tool_request is not None:
                    self._debug("warning", "LLM", "Ignoring text after tool call")
                    continue
                if text_stream is None:
                    text_stream = StreamableText()
                    ui.update(BotMessage(content=text_stream))
                text_parts.append(event.text)
                text_stream.append(event.text)

            elif isinstance(event, ToolCallRequest):
                if text_stream is not None or tool_request is not None:
                    self._debug("warning", "Tool", f"Ignoring extra tool call '{event.tool_name}'")
                    continue
                answer = self._validate_tool_call(event)
                tool_request = event
                self._debug("info", "Tool", f"Model invoked '{event.tool_name}'")
                ui.update(AnswerSkeleton())

        if tool_request is not None and answer is not None:
            return await self._finish_tool_turn(state, ui, tool_request, answer, stream.usage)
        return await self._finish_text_turn(state, ui, text_stream, "".join(text_parts), stream.usage)

    async def _iter_events(self, stream: StreamingResponse) -> AsyncIterator[Any]:
        """Iterate the stream, enforcing the per-event timeout when configured."""
        iterator = stream.__aiter__()
        while True:
            try:
                if self._stream_timeout is None:
                    event = await iterator.__anext__()
                else:
                    event = await asyncio.wait_for(iterator.__anext__(), self._stream_timeout)
            except StopAsyncIteration:
                return
            except TimeoutError as e:
                raise StreamTimeoutError(
                    f"No stream event within {self._stream_timeout}s"
                ) from e
            yield event

    def _validate_tool_call(self, request: ToolCallRequest) -> AnswerWithRelatedQuestions:
        if request.tool_name != TOOL_NAME:
            raise UnknownToolError(f"Model invoked unregistered tool '{request.tool_name}'")
        try:
            return AnswerWithRelatedQuestions.model_validate(request.arguments)
        except ValidationError as e:
            raise ToolArgumentsError(
                f"Invalid arguments for '{request.tool_name}': {e.error_count()} error(s)"
            ) from e

    async def _finish_text_turn(
        self,
        state: ConversationState,
        ui: StreamableUI,
        text_stream: StreamableText | None,
        text: str,
        usage: dict[str, Any] | None,
    ) -> TurnResult:
        if text_stream is None:
            text_stream = StreamableText()
            ui.update(BotMessage(content=text_stream))
        text_stream.done()

        reply = Message.assistant(text)
        try:
            await state.done(state.get().append(reply))
        finally:
            if state.phase is TurnPhase.SETTLED and not ui.is_done:
                ui.done()

        self._debug("info", "LLM", f"Text turn settled ({len(text)} chars)")
        return TurnResult(messages=[reply], used_tool=False, usage=usage)

    async def _finish_tool_turn(
        self,
        state: ConversationState,
        ui: StreamableUI,
        request: ToolCallRequest,
        answer: AnswerWithRelatedQuestions,
        usage: dict[str, Any] | None,
    ) -> TurnResult:
        # Keep the placeholder on screen for a moment
        await asyncio.sleep(self._tool_render_delay)

        call_id = request.call_id or new_id()
        payload = answer.to_payload()
        call_message = Message(
            role="assistant",
            content=[ToolCallPart(tool_name=TOOL_NAME, call_id=call_id, args=payload)],
        )
        result_message = Message(
            role="tool",
            content=[ToolResultPart(tool_name=TOOL_NAME, call_id=call_id, result=payload)],
        )
        # Call and result are appended in the same update
        try:
            await state.done(state.get().append(call_message, result_message))
        finally:
            if state.phase is TurnPhase.SETTLED and not ui.is_done:
                ui.done(AnswerCard(answer=answer.answer, related_questions=list(answer.related_questions)))

        self._debug("info", "Tool", f"Tool turn settled with {len(answer.related_questions)} related question(s)")
        return TurnResult(messages=[call_message, result_message], used_tool=True, usage=usage)
