"""In-memory chat store.

Simple dict-based storage for session-only persistence.
Data is lost when the application exits.
"""

from ..conversation.models import Chat
from .base import ChatStore


class InMemoryChatStore(ChatStore):
    """In-memory chat store (session-only).

    Suitable for guest use or testing.
    """

    def __init__(self) -> None:
        self._chats: dict[str, Chat] = {}

    async def connect(self) -> None:
        """Initialize store (no-op for in-memory)."""
        pass

    async def disconnect(self) -> None:
        """Close store (no-op for in-memory)."""
        pass

    async def save(self, chat: Chat) -> None:
        self._chats[chat.id] = chat

    async def get(self, chat_id: str) -> Chat | None:
        return self._chats.get(chat_id)

    async def list_chats(self, owner_id: str, limit: int = 20) -> list[Chat]:
        owned = [chat for chat in self._chats.values() if chat.owner_id == owner_id]
        owned.sort(key=lambda chat: chat.created_at, reverse=True)
        return owned[:limit]

    async def delete(self, chat_id: str) -> bool:
        return self._chats.pop(chat_id, None) is not None

    @property
    def backend_type(self) -> str:
        return "memory"
