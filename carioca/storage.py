"""Persistence boundary for sessions."""

from __future__ import annotations

import copy
from typing import Dict, Optional, Protocol

from .state import GameSession


class SessionStore(Protocol):
    def load_session(self, session_id: str) -> Optional[GameSession]:
        ...

    def save_session(self, session: GameSession) -> None:
        ...

    def delete_session(self, session_id: str) -> None:
        ...


class InMemorySessionStore:
    """Dictionary-backed store; copies on the way in and out so callers never share state."""

    def __init__(self) -> None:
        self._sessions: Dict[str, GameSession] = {}

    def load_session(self, session_id: str) -> Optional[GameSession]:
        session = self._sessions.get(session_id)
        return copy.deepcopy(session) if session is not None else None

    def save_session(self, session: GameSession) -> None:
        self._sessions[session.id] = copy.deepcopy(session)

    def delete_session(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._sessions)
