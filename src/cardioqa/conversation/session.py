"""Per-conversation session container.

Binds one conversation id to its message log and render state, exposes the
turn-submission action, and implements the load/save lifecycle hooks the
host calls.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Any

from ..config import TITLE_MAX_LENGTH
from ..exceptions import PersistenceError, TurnInProgressError
from .generator import ResponseGenerator, TurnResult
from .models import Chat, Conversation, Message, utcnow
from .projector import project_render_state
from .render import RenderState, RenderUnit
from .state import ConversationState, TurnPhase

if TYPE_CHECKING:
    from ..auth import AuthProvider
    from ..storage import ChatStore


def derive_title(conversation: Conversation) -> str:
    """Title a chat after its first user message."""
    text = conversation.first_user_text() or ""
    return text[:TITLE_MAX_LENGTH]


class ChatSession:
    """The single mutable binding point for one active conversation.

    Holds the message log (via ConversationState) and the render state.
    Only ``submit_turn`` and the generator it drives write to the log.

    Concurrent submissions are rejected: while a turn is in flight,
    ``submit_turn`` raises TurnInProgressError.
    """

    def __init__(
        self,
        generator: ResponseGenerator,
        auth: "AuthProvider",
        store: "ChatStore",
        conversation_id: str | None = None,
    ):
        """Initialize an empty session.

        Args:
            generator: Produces assistant turns
            auth: Source of the current user session
            store: Chat persistence
            conversation_id: Id for a new conversation (generated when omitted)
        """
        self._generator = generator
        self._auth = auth
        self._store = store
        conversation = Conversation(conversation_id=conversation_id) if conversation_id else Conversation()
        self._state = ConversationState(conversation, on_settle=self.on_settle)
        self._ui_state = RenderState()
        self._created_at: datetime = utcnow()
        self._current_unit: RenderUnit | None = None
        self._debug_callback: Any | None = None

    def set_debug_callback(self, callback: Any) -> None:
        """Set the debug callback and propagate it to the generator and state.

        Args:
            callback: Callable(level: str, component: str, message: str)
        """
        self._debug_callback = callback
        self._generator.set_debug_callback(callback)
        self._state.set_debug_callback(callback)

    def _debug(self, level: str, message: str) -> None:
        if self._debug_callback:
            self._debug_callback(level, "Session", message)

    @property
    def conversation_id(self) -> str:
        return self._state.conversation_id

    @property
    def ai_state(self) -> ConversationState:
        return self._state

    @property
    def ui_state(self) -> RenderState:
        return self._ui_state

    @property
    def messages(self) -> list[Message]:
        return list(self._state.get().messages)

    @property
    def is_busy(self) -> bool:
        unit = self._current_unit
        return unit is not None and unit.task is not None and not unit.task.done()

    async def submit_turn(self, text: str) -> RenderUnit:
        """Append the user's message and start the assistant turn.

        Returns immediately with a render unit whose display is still live;
        await ``unit.task`` (or ``wait()``) for the settled result.

        Raises:
            ValueError: If the text is blank
            TurnInProgressError: If another turn is still in flight
        """
        if not text or not text.strip():
            raise ValueError("Cannot submit an empty message")
        if self.is_busy or self._state.phase is TurnPhase.STREAMING:
            raise TurnInProgressError(
                f"Conversation {self.conversation_id} already has a turn in flight"
            )

        before = self._state.get()
        self._state.update(before.append(Message.user(text)))
        self._debug("info", f"Submitted turn: '{text[:50]}'")

        unit = self._generator.start(self._state, rollback_to=before)
        self._current_unit = unit
        return unit

    async def wait(self) -> TurnResult | None:
        """Wait for the in-flight turn, if any, and return its result."""
        if self._current_unit is None or self._current_unit.task is None:
            return None
        return await self._current_unit.task

    async def _load_chat(self, conversation_id: str) -> Chat | None:
        """Fetch a chat the signed-in user is allowed to read."""
        session = await self._auth.current_session()
        if session is None:
            self._debug("debug", "Load skipped: no active session")
            return None

        chat = await self._store.get(conversation_id)
        if chat is None or chat.owner_id != session.user_id:
            self._debug("debug", f"Chat {conversation_id} not found for current user")
            return None
        return chat

    async def on_load(self, conversation_id: str) -> list[RenderUnit] | None:
        """Load a stored conversation as render units.

        Returns None when nobody is signed in, the chat does not exist, or
        it belongs to someone else.
        """
        chat = await self._load_chat(conversation_id)
        if chat is None:
            return None
        return project_render_state(chat.to_conversation())

    async def on_settle(self, conversation: Conversation) -> None:
        """Persist a settled conversation for the signed-in user.

        Does nothing for guests.

        Raises:
            PersistenceError: If the store fails to save
        """
        session = await self._auth.current_session()
        if session is None:
            self._debug("debug", "Save skipped: no active session")
            return

        chat = Chat(
            id=conversation.conversation_id,
            title=derive_title(conversation),
            owner_id=session.user_id,
            created_at=self._created_at,
            messages=list(conversation.messages),
        )
        try:
            await self._store.save(chat)
        except Exception as e:
            raise PersistenceError(f"Failed to save chat {chat.id}: {e}") from e
        self._debug("info", f"Saved chat {chat.id} ({len(chat.messages)} messages)")

    async def restore(self, conversation_id: str) -> bool:
        """Reopen a stored conversation in this session.

        Replaces the message log and render state when the chat loads.

        Returns:
            True if the conversation was restored
        """
        if self.is_busy:
            raise TurnInProgressError("Cannot restore while a turn is in flight")

        chat = await self._load_chat(conversation_id)
        if chat is None:
            return False

        conversation = chat.to_conversation()
        self._state.reset(conversation)
        self._created_at = chat.created_at
        self._ui_state.replace(project_render_state(conversation))
        self._current_unit = None
        self._debug("info", f"Restored chat {conversation_id} ({len(chat.messages)} messages)")
        return True
