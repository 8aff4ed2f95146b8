"""Data models for the message log.

These models define the serializable conversation record (the "AI state"),
independent of how it is rendered or where it is stored.
"""

import secrets
import string
from datetime import datetime, timezone
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..config import CHAT_PATH_PREFIX, ID_LENGTH, RELATED_QUESTION_COUNT

_ID_ALPHABET = string.digits + string.ascii_letters

Role = Literal["system", "user", "assistant", "tool"]


def new_id(length: int = ID_LENGTH) -> str:
    """Generate a short random id for messages, units and tool calls."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ToolCallPart(BaseModel):
    """A tool invocation recorded on an assistant message."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: Literal["tool-call"] = "tool-call"
    tool_name: str = Field(alias="toolName")
    call_id: str = Field(alias="callId")
    args: dict[str, Any] = Field(default_factory=dict)


class ToolResultPart(BaseModel):
    """The result of a tool invocation recorded on a tool message."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: Literal["tool-result"] = "tool-result"
    tool_name: str = Field(alias="toolName")
    call_id: str = Field(alias="callId")
    result: dict[str, Any] = Field(default_factory=dict)


ContentPart = Annotated[ToolCallPart | ToolResultPart, Field(discriminator="kind")]
MessageContent = str | list[ContentPart]


class Message(BaseModel):
    """One entry in the message log.

    Content is a tagged variant: plain text, a list of tool-call parts
    (assistant only) or a list of tool-result parts (tool only).
    Messages are immutable once created.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    role: Role
    content: MessageContent

    @model_validator(mode="after")
    def _check_content_matches_role(self) -> "Message":
        if isinstance(self.content, str):
            if self.role == "tool":
                raise ValueError("tool messages must carry tool-result parts")
            return self

        if self.role == "assistant":
            expected: type[BaseModel] = ToolCallPart
        elif self.role == "tool":
            expected = ToolResultPart
        else:
            raise ValueError(f"{self.role} messages must carry plain text")

        if not self.content:
            raise ValueError(f"{self.role} message has an empty part list")
        for part in self.content:
            if not isinstance(part, expected):
                raise ValueError(
                    f"{self.role} message cannot carry a {part.kind} part"
                )
        return self

    @classmethod
    def user(cls, text: str) -> "Message":
        return cls(role="user", content=text)

    @classmethod
    def assistant(cls, text: str) -> "Message":
        return cls(role="assistant", content=text)

    @property
    def text(self) -> str | None:
        """Plain text content, or None for tool-call/tool-result messages."""
        return self.content if isinstance(self.content, str) else None

    @property
    def tool_calls(self) -> list[ToolCallPart]:
        if isinstance(self.content, str):
            return []
        return [part for part in self.content if isinstance(part, ToolCallPart)]

    @property
    def tool_results(self) -> list[ToolResultPart]:
        if isinstance(self.content, str):
            return []
        return [part for part in self.content if isinstance(part, ToolResultPart)]


class Conversation(BaseModel):
    """Immutable snapshot of a conversation's message log."""

    model_config = ConfigDict(frozen=True)

    conversation_id: str = Field(default_factory=new_id)
    messages: list[Message] = Field(default_factory=list)

    def append(self, *messages: Message) -> "Conversation":
        """Return a new snapshot with messages appended to the log."""
        return self.model_copy(update={"messages": [*self.messages, *messages]})

    def first_user_text(self) -> str | None:
        for message in self.messages:
            if message.role == "user" and message.text is not None:
                return message.text
        return None


class RelatedQuestion(BaseModel):
    """A follow-up question the user can click."""

    model_config = ConfigDict(frozen=True)

    question: str = Field(description="The related question")


class AnswerWithRelatedQuestions(BaseModel):
    """Parameters of the structured answer tool."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    answer: str = Field(description="The answer to the user's question")
    related_questions: list[RelatedQuestion] = Field(
        alias="relatedQuestions",
        min_length=RELATED_QUESTION_COUNT,
        max_length=RELATED_QUESTION_COUNT,
        description="Questions the user may want to ask next",
    )

    def to_payload(self) -> dict[str, Any]:
        """Serialize using the wire field names stored in the log."""
        return self.model_dump(by_alias=True)


class Chat(BaseModel):
    """A persisted conversation record."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    owner_id: str
    created_at: datetime = Field(default_factory=utcnow)
    messages: list[Message] = Field(default_factory=list)
    path: str = ""

    @model_validator(mode="before")
    @classmethod
    def _default_path(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("path") and data.get("id"):
            data = {**data, "path": f"{CHAT_PATH_PREFIX}{data['id']}"}
        return data

    def to_conversation(self) -> Conversation:
        return Conversation(conversation_id=self.id, messages=list(self.messages))
