"""Thread-safe in-memory cache of upstream response bodies."""

from __future__ import annotations

import time
from collections.abc import Callable
from threading import Lock
from typing import Any


class ResponseCache:
    """TTL cache of parsed JSON bodies keyed by request URL.

    Writers: CoinGeckoClient after a successful GET with cache_seconds > 0.
    Readers: the same client, before going to the network.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._entries: dict[str, tuple[float, Any]] = {}
        self._lock = Lock()
        self._clock = clock

    def put(self, key: str, value: Any, ttl: float) -> None:
        """Store `value` under `key` for `ttl` seconds. Non-positive ttl is a no-op.

        Every write also evicts all expired entries, not only the one for `key`.
        """
        if ttl <= 0:
            return
        with self._lock:
            now = self._clock()
            expired = [k for k, (expires_at, _) in self._entries.items() if now >= expires_at]
            for k in expired:
                del self._entries[k]
            self._entries[key] = (now + ttl, value)

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None if missing or expired (expired entries are evicted)."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
