"""Chat persistence module for cardioqa.

Stores finalized conversation snapshots so they can be reopened later.
"""

from .base import ChatStore
from .in_memory import InMemoryChatStore
from .sqlite import SQLiteChatStore

__all__ = [
    "ChatStore",
    "InMemoryChatStore",
    "SQLiteChatStore",
]
