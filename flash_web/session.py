"""
Server-side sessions (in-memory). The cookie carries only the session id.
Values are held by reference, so every concurrent request of a session sees the
same objects. Idle sessions expire after SESSION_TTL_SECONDS.
"""
import logging
import secrets
import threading
import time
from collections.abc import Callable
from typing import Any

from flash_web.config import SESSION_TTL_SECONDS

logger = logging.getLogger(__name__)


class SessionInvalidatedError(RuntimeError):
    """Raised when a session is used after invalidate()."""


class Session:
    def __init__(self, session_id: str):
        self.id = session_id
        self.last_access = time.monotonic()
        self._data: dict[str, Any] = {}
        self._valid = True
        self._lock = threading.Lock()

    @property
    def valid(self) -> bool:
        return self._valid

    def _check(self) -> None:
        if not self._valid:
            raise SessionInvalidatedError(f"session {self.id[:8]}... has been invalidated")

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            self._check()
            return self._data.get(key, default)

    def __getitem__(self, key: str) -> Any:
        with self._lock:
            self._check()
            return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        with self._lock:
            self._check()
            self._data[key] = value

    def __contains__(self, key: str) -> bool:
        with self._lock:
            self._check()
            return key in self._data

    def setdefault(self, key: str, factory: Callable[[], Any]) -> Any:
        """Return the value for key, storing factory() first if absent. Concurrent callers get the same object."""
        with self._lock:
            self._check()
            if key not in self._data:
                self._data[key] = factory()
            return self._data[key]

    def pop(self, key: str, default: Any = None) -> Any:
        with self._lock:
            self._check()
            return self._data.pop(key, default)

    def invalidate(self) -> None:
        """Drop all data; any later access raises SessionInvalidatedError."""
        with self._lock:
            self._valid = False
            self._data.clear()

    def expired(self, ttl_seconds: int) -> bool:
        return (time.monotonic() - self.last_access) > ttl_seconds


class SessionStore:
    """Thread-safe in-memory session registry keyed by session id."""

    def __init__(self, ttl_seconds: int = SESSION_TTL_SECONDS):
        self.ttl_seconds = ttl_seconds
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def create(self) -> Session:
        session = Session(secrets.token_urlsafe(32))
        with self._lock:
            self._sessions[session.id] = session
        logger.debug("Created session %s...", session.id[:8])
        return session

    def get(self, session_id: str | None) -> Session | None:
        """Return the live session for session_id, or None if unknown, expired or invalidated."""
        if not session_id:
            return None
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            if not session.valid or session.expired(self.ttl_seconds):
                del self._sessions[session_id]
                return None
            session.last_access = time.monotonic()
            return session

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def purge_expired(self) -> int:
        """Remove expired or invalidated sessions. Returns how many were removed."""
        with self._lock:
            stale = [
                sid for sid, s in self._sessions.items()
                if not s.valid or s.expired(self.ttl_seconds)
            ]
            for sid in stale:
                del self._sessions[sid]
        if stale:
            logger.debug("Purged %d sessions", len(stale))
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
