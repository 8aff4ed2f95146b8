"""Authorization collaborator.

Hides where the current user comes from. Every read or write of a stored
conversation asks ``current_session()`` first; ``None`` means guest mode.
"""

import os
from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict, Field


class UserSession(BaseModel):
    """The signed-in user."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(description="Identifier of the signed-in user")


class AuthProvider(ABC):
    """Abstract source of the current user session."""

    @abstractmethod
    async def current_session(self) -> UserSession | None:
        """Return the active session, or None when nobody is signed in."""


class StaticAuthProvider(AuthProvider):
    """Always reports the same user (or guest when ``user_id`` is None)."""

    def __init__(self, user_id: str | None = None):
        self._session = UserSession(user_id=user_id) if user_id else None

    async def current_session(self) -> UserSession | None:
        return self._session


class EnvAuthProvider(AuthProvider):
    """Reads the user id from an environment variable on every call."""

    def __init__(self, variable: str = "CARDIOQA_USER_ID"):
        self._variable = variable

    async def current_session(self) -> UserSession | None:
        user_id = os.getenv(self._variable, "").strip()
        return UserSession(user_id=user_id) if user_id else None
