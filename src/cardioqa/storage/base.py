"""Abstract base class for chat stores.

This module defines the interface for conversation persistence.
The abstraction hides:
- Storage format (JSON documents, SQLite rows, etc.)
- Persistence mechanism (file, database, in-memory)
- Connection management
"""

from abc import ABC, abstractmethod

from ..conversation.models import Chat


class ChatStore(ABC):
    """Abstract chat store.

    ``save`` must be idempotent: saving the same chat twice leaves a single
    record with that content.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Initialize the store."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the store gracefully."""

    @abstractmethod
    async def save(self, chat: Chat) -> None:
        """Insert or replace a chat by id."""

    @abstractmethod
    async def get(self, chat_id: str) -> Chat | None:
        """Fetch a chat by id, or None if it does not exist."""

    @abstractmethod
    async def list_chats(self, owner_id: str, limit: int = 20) -> list[Chat]:
        """List an owner's chats, newest first."""

    @abstractmethod
    async def delete(self, chat_id: str) -> bool:
        """Delete a chat. Returns True if something was deleted."""

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Get the backend type identifier."""
