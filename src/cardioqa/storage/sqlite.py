"""SQLite chat store.

Provides persistent chat storage using a SQLite database file.
Uses aiosqlite for async access.
"""

from datetime import datetime
from pathlib import Path

import aiosqlite
from pydantic import TypeAdapter

from ..conversation.models import Chat, Message
from .base import ChatStore

_MESSAGES = TypeAdapter(list[Message])


class SQLiteChatStore(ChatStore):
    """SQLite-backed chat store.

    Each chat is one row; its message log is stored as a JSON document
    using the wire field names (``toolName``, ``callId``).
    """

    def __init__(self, path: str | Path = "./cardioqa_chats.db"):
        self._db_path = Path(path)
        self._connection: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Initialize database connection and schema."""
        if self._connection is not None:
            return
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(self._db_path)
        await self._create_schema()

    async def _create_schema(self) -> None:
        """Create database tables."""
        await self._connection.execute("""
            CREATE TABLE IF NOT EXISTS chats (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                owner_id TEXT NOT NULL,
                created_at TEXT NOT NULL,
                path TEXT NOT NULL,
                messages TEXT NOT NULL DEFAULT '[]'
            )
        """)

        await self._connection.execute("""
            CREATE INDEX IF NOT EXISTS idx_chats_owner
            ON chats(owner_id, created_at)
        """)

        await self._connection.commit()

    async def disconnect(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    def _require_connection(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise RuntimeError("SQLiteChatStore is not connected; call connect() first")
        return self._connection

    async def save(self, chat: Chat) -> None:
        """Insert or replace a chat."""
        connection = self._require_connection()
        await connection.execute("""
            INSERT INTO chats (id, title, owner_id, created_at, path, messages)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                title = excluded.title,
                owner_id = excluded.owner_id,
                created_at = excluded.created_at,
                path = excluded.path,
                messages = excluded.messages
        """, (
            chat.id,
            chat.title,
            chat.owner_id,
            chat.created_at.isoformat(),
            chat.path,
            _MESSAGES.dump_json(chat.messages, by_alias=True).decode("utf-8"),
        ))
        await connection.commit()

    async def get(self, chat_id: str) -> Chat | None:
        connection = self._require_connection()
        async with connection.execute(
            "SELECT id, title, owner_id, created_at, path, messages FROM chats WHERE id = ?",
            (chat_id,)
        ) as cursor:
            row = await cursor.fetchone()

        return self._row_to_chat(row) if row is not None else None

    async def list_chats(self, owner_id: str, limit: int = 20) -> list[Chat]:
        connection = self._require_connection()
        async with connection.execute(
            """
            SELECT id, title, owner_id, created_at, path, messages
            FROM chats
            WHERE owner_id = ?
            ORDER BY created_at DESC
            LIMIT ?
            """,
            (owner_id, limit)
        ) as cursor:
            rows = await cursor.fetchall()

        return [self._row_to_chat(row) for row in rows]

    async def delete(self, chat_id: str) -> bool:
        connection = self._require_connection()
        cursor = await connection.execute("DELETE FROM chats WHERE id = ?", (chat_id,))
        await connection.commit()
        return cursor.rowcount > 0

    @staticmethod
    def _row_to_chat(row: tuple) -> Chat:
        chat_id, title, owner_id, created_at, path, messages_json = row
        return Chat(
            id=chat_id,
            title=title,
            owner_id=owner_id,
            created_at=datetime.fromisoformat(created_at),
            path=path,
            messages=_MESSAGES.validate_json(messages_json),
        )

    @property
    def backend_type(self) -> str:
        return "sqlite"

    @property
    def db_path(self) -> Path:
        return self._db_path
