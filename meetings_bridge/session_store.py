"""In-memory session storage for OAuth credentials and user profiles."""

import secrets
import threading
import time
from typing import Any

from pydantic import BaseModel

STATE_TTL_SECONDS = 600


class Session(BaseModel):
    """An authenticated session: the token set and the profile it belongs to."""
    tokens: dict[str, Any]
    profile: dict[str, Any]


class SessionStore:
    """Process-local session map keyed by session id.

    Sessions are replaced whole, so a reader never sees tokens without the
    matching profile. Pending OAuth states map an opaque, single-use value
    back to the session that started sign-in. Nothing is persisted across
    restarts.
    """

    def __init__(self):
        self._sessions: dict[str, Session] = {}
        self._states: dict[str, tuple[str, float]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def new_session_id() -> str:
        return secrets.token_urlsafe(32)

    def get(self, session_id: str | None) -> Session | None:
        if not session_id:
            return None
        with self._lock:
            return self._sessions.get(session_id)

    def save(self, session_id: str, tokens: dict[str, Any], profile: dict[str, Any]) -> Session:
        """Commit tokens and profile together for a session."""
        session = Session(tokens=tokens, profile=profile)
        with self._lock:
            self._sessions[session_id] = session
        return session

    # ========== OAuth state ==========

    def create_state(self, session_id: str, ttl: float = STATE_TTL_SECONDS) -> str:
        """Issue an OAuth state value bound to ``session_id``."""
        state = secrets.token_urlsafe(32)
        now = time.monotonic()
        with self._lock:
            self._states = {
                key: entry for key, entry in self._states.items() if entry[1] > now
            }
            self._states[state] = (session_id, now + ttl)
        return state

    def consume_state(self, state: str | None) -> str | None:
        """Return the session id a state was issued for, at most once.

        Unknown and expired states yield None.
        """
        if not state:
            return None
        with self._lock:
            entry = self._states.pop(state, None)
        if entry is None:
            return None
        session_id, expires_at = entry
        if expires_at <= time.monotonic():
            return None
        return session_id

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


# Singleton pattern for easy access
_store: SessionStore | None = None


def get_session_store() -> SessionStore:
    """Get or create the process-wide SessionStore instance."""
    global _store
    if _store is None:
        _store = SessionStore()
    return _store
