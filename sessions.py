"""
Session directory: opaque bearer tokens mapped to administrator ids.

InMemorySessionStore lives for the process lifetime only. There is no expiry
and a restart logs everyone out; swap in another SessionStore for anything
beyond an internal tool.
"""

import uuid
from abc import ABC, abstractmethod
from typing import Dict, Optional


class SessionStore(ABC):
    @abstractmethod
    def get(self, token: str) -> Optional[str]:
        """Administrator id for a token, or None."""

    @abstractmethod
    def set(self, token: str, user_id: str) -> None:
        ...

    @abstractmethod
    def delete(self, token: str) -> None:
        ...

    def create(self, user_id: str) -> str:
        token = str(uuid.uuid4())
        self.set(token, user_id)
        return token


class InMemorySessionStore(SessionStore):
    def __init__(self):
        self._sessions: Dict[str, str] = {}

    def get(self, token: str) -> Optional[str]:
        return self._sessions.get(token)

    def set(self, token: str, user_id: str) -> None:
        self._sessions[token] = user_id

    def delete(self, token: str) -> None:
        self._sessions.pop(token, None)

    def __len__(self) -> int:
        return len(self._sessions)
