"""In-process store for live discovery sessions.

Sessions hold worker pools and in-flight validations, so they live in
process memory only. Any session leaving the store (expiry, eviction,
delete) is closed.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional

from discovery_engine.config.settings import load_settings
from discovery_engine.engine.session import DiscoverySession

_logger = logging.getLogger("trip-discovery.session")


class SessionStore:
    backend = "memory"

    def __init__(self, ttl: float = 1800.0, max_sessions: int = 200):
        self._store: dict[str, tuple[DiscoverySession, float]] = {}
        self._ttl = ttl
        self._max_sessions = max_sessions
        self._lock = threading.Lock()

    def get(self, session_id: str) -> Optional[DiscoverySession]:
        expired: Optional[DiscoverySession] = None
        with self._lock:
            entry = self._store.get(session_id)
            if entry is None:
                return None
            session, expire_at = entry
            if time.time() > expire_at:
                del self._store[session_id]
                expired = session
            else:
                self._store[session_id] = (session, time.time() + self._ttl)
        if expired is not None:
            expired.close()
            return None
        return session

    def save(self, session: DiscoverySession) -> None:
        evicted: list[DiscoverySession] = []
        with self._lock:
            if len(self._store) >= self._max_sessions:
                evicted.extend(self._pop_expired())
            if len(self._store) >= self._max_sessions:
                oldest = min(self._store, key=lambda k: self._store[k][1])
                evicted.append(self._store.pop(oldest)[0])
            self._store[session.session_id] = (session, time.time() + self._ttl)
        for old in evicted:
            _logger.info("Closing evicted discovery session %s", old.session_id)
            old.close()

    def delete(self, session_id: str) -> bool:
        with self._lock:
            entry = self._store.pop(session_id, None)
        if entry is None:
            return False
        entry[0].close()
        return True

    def _pop_expired(self) -> list[DiscoverySession]:
        now = time.time()
        expired = [k for k, (_, exp) in self._store.items() if now > exp]
        return [self._store.pop(key)[0] for key in expired]

    def close_all(self) -> None:
        with self._lock:
            sessions = [session for session, _ in self._store.values()]
            self._store.clear()
        for session in sessions:
            session.close()

    @property
    def active_count(self) -> int:
        now = time.time()
        with self._lock:
            return sum(1 for _, exp in self._store.values() if now <= exp)


_global_lock = threading.Lock()
_global_store: Optional[SessionStore] = None


def get_session_store() -> SessionStore:
    global _global_store
    with _global_lock:
        if _global_store is None:
            settings = load_settings()
            _global_store = SessionStore(
                ttl=settings.session_ttl_seconds,
                max_sessions=settings.session_max_sessions,
            )
        return _global_store
