"""Mutable handle over one conversation's message log.

Hides the mutation protocol of the AI state:
- Snapshots are immutable; every change swaps in a new Conversation
- A turn moves the handle through idle -> streaming -> settled
- Finalizing a turn fires the settle hook exactly once
"""

import asyncio
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from ..exceptions import StateAlreadySettledError
from .models import Conversation

SettleHook = Callable[[Conversation], Awaitable[None]]


class TurnPhase(str, Enum):
    """Lifecycle of the message log within one turn."""

    IDLE = "idle"
    STREAMING = "streaming"
    SETTLED = "settled"
    FAILED = "failed"


class ConversationState:
    """Single mutable binding point for a conversation's message log.

    Only the session container and the response generator write to it.
    """

    def __init__(
        self,
        conversation: Conversation | None = None,
        on_settle: SettleHook | None = None,
    ) -> None:
        self._conversation = conversation or Conversation()
        self._on_settle = on_settle
        self._phase = TurnPhase.IDLE
        self._debug_callback: Any | None = None
        self.last_persistence_error: BaseException | None = None

    def set_debug_callback(self, callback: Any) -> None:
        """Set debug callback for logging.

        Args:
            callback: Callable(level: str, component: str, message: str)
        """
        self._debug_callback = callback

    def _debug(self, level: str, message: str) -> None:
        if self._debug_callback:
            self._debug_callback(level, "State", message)

    @property
    def phase(self) -> TurnPhase:
        return self._phase

    @property
    def conversation_id(self) -> str:
        return self._conversation.conversation_id

    def get(self) -> Conversation:
        """Return the current immutable snapshot."""
        return self._conversation

    def update(self, conversation: Conversation) -> None:
        """Replace the snapshot while a turn is open."""
        if self._phase is not TurnPhase.STREAMING:
            self._phase = TurnPhase.STREAMING
        self._conversation = conversation

    async def done(self, conversation: Conversation) -> None:
        """Replace the snapshot, settle the turn and fire the settle hook.

        Raises:
            StateAlreadySettledError: If the turn was already finalized
        """
        if self._phase is TurnPhase.SETTLED:
            raise StateAlreadySettledError(
                f"Conversation {self.conversation_id} was already settled this turn"
            )
        self._conversation = conversation
        self._phase = TurnPhase.SETTLED
        self._debug("debug", f"Settled with {len(conversation.messages)} message(s)")

        if self._on_settle is None:
            return
        # Shielded so a cancelled turn still finishes writing what it settled
        save = asyncio.ensure_future(self._on_settle(conversation))
        try:
            await asyncio.shield(save)
        except asyncio.CancelledError:
            self._debug("warning", f"Cancelled while saving {self.conversation_id}; save continues")
            save.add_done_callback(self._record_background_save)
            raise
        except Exception as e:
            self._record_persistence_error(e)
        else:
            self.last_persistence_error = None

    def _record_persistence_error(self, error: BaseException) -> None:
        # In-memory state stays authoritative; the conversation just won't survive a reload
        self.last_persistence_error = error
        self._debug("error", f"Failed to persist conversation {self.conversation_id}: {error}")

    def _record_background_save(self, save: "asyncio.Future[None]") -> None:
        if save.cancelled():
            return
        error = save.exception()
        if error is not None:
            self._record_persistence_error(error)
        else:
            self.last_persistence_error = None

    def rollback(self, snapshot: Conversation, error: BaseException | None = None) -> None:
        """Restore the pre-turn snapshot after a failed turn."""
        self._conversation = snapshot
        self._phase = TurnPhase.FAILED
        if error is not None:
            self._debug("warning", f"Turn rolled back: {error}")

    def reset(self, conversation: Conversation) -> None:
        """Swap in a different conversation (rehydration)."""
        self._conversation = conversation
        self._phase = TurnPhase.IDLE
