"""
Time-bounded response cache keyed by request path.

Entries are never evicted; an expired entry is simply ignored until the
same path is stored again. One cache must not be shared across hosts since
the key carries no origin.
"""
import threading
import time
from typing import Callable, Dict, Optional, Tuple

import structlog

logger = structlog.get_logger(__name__)


class ResponseCache:
    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock
        self._entries: Optional[Dict[str, Tuple[object, float]]] = None
        self._lock = threading.Lock()

    def store(self, path: str, response, ttl: float, now: float = None) -> float:
        """Record ``response`` under ``path`` until ``now + ttl``; returns the expiry."""
        if now is None:
            now = self.clock()
        expires_at = now + ttl
        with self._lock:
            if self._entries is None:
                self._entries = {}
            self._entries[path] = (response, expires_at)
        logger.debug("cache_store", path=path, ttl=ttl, expires_at=expires_at)
        return expires_at

    def lookup(self, path: str, now: float = None):
        """Return the cached response for ``path`` if ``now`` is before its expiry."""
        if now is None:
            now = self.clock()
        with self._lock:
            if not self._entries or path not in self._entries:
                return None
            response, expires_at = self._entries[path]
        if now < expires_at:
            return response
        logger.debug("cache_stale", path=path, expired_at=expires_at)
        return None

    def clear(self):
        with self._lock:
            self._entries = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries) if self._entries else 0
