"""In-memory per-session key/value storage.

Each browser session (identified by the session header) gets its own string
mapping, the server-side counterpart of the tab's session storage. Reading a
session never registers it: an entry is created by the first write and is
forgotten after `ttl_seconds` without activity, on logout, or when the
registry is full (least recently used first).
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterator, MutableMapping

from cachetools import TTLCache

DEFAULT_TTL_SECONDS = 8 * 60 * 60
DEFAULT_MAX_SESSIONS = 10_000


class SessionState(MutableMapping[str, str]):
    """Live view of one session's data in an InMemorySessionStorage.

    Reads go to the registry and see nothing until something is written.
    clear() drops the whole session from the registry.
    """

    def __init__(self, storage: InMemorySessionStorage, session_id: str) -> None:
        self._storage = storage
        self.session_id = session_id

    def _data(self) -> dict[str, str]:
        return self._storage._get(self.session_id)

    def __getitem__(self, key: str) -> str:
        return self._data()[key]

    def __setitem__(self, key: str, value: str) -> None:
        self._storage._set(self.session_id, key, value)

    def __delitem__(self, key: str) -> None:
        self._storage._delete(self.session_id, key)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._data()))

    def __len__(self) -> int:
        return len(self._data())

    def clear(self) -> None:
        self._storage.drop(self.session_id)


class InMemorySessionStorage:
    """Registry of session id -> string mapping, bounded by idle TTL and size."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_sessions: int = DEFAULT_MAX_SESSIONS,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self._sessions: TTLCache = TTLCache(maxsize=max_sessions, ttl=ttl_seconds, timer=timer)
        self._lock = threading.Lock()

    def for_session(self, session_id: str) -> SessionState:
        """Return the live mapping for a session. Does not register the session."""
        return SessionState(self, session_id)

    def drop(self, session_id: str) -> None:
        """Forget a session entirely (logout or tab session ended)."""
        with self._lock:
            self._sessions.pop(session_id, None)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            self._sessions.expire()
            return len(self._sessions)

    def _get(self, session_id: str) -> dict[str, str]:
        with self._lock:
            data = self._sessions.get(session_id)
            if data is None:
                return {}
            # Re-inserting restarts the idle timer.
            self._sessions[session_id] = data
            return dict(data)

    def _set(self, session_id: str, key: str, value: str) -> None:
        with self._lock:
            data = self._sessions.get(session_id)
            if data is None:
                data = {}
            data[key] = value
            self._sessions[session_id] = data

    def _delete(self, session_id: str, key: str) -> None:
        with self._lock:
            data = self._sessions.get(session_id)
            if data is None or key not in data:
                raise KeyError(key)
            del data[key]
            self._sessions[session_id] = data
