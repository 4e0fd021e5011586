"""
In-memory TTL cache for lookup responses.

Entries expire lazily: an expired entry is dropped by the read that finds
it, nothing sweeps the store in the background. Values are returned as
stored (no copy), so callers must not mutate them.
"""

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

Clock = Callable[[], float]


@dataclass
class CacheEntry:
    """A cached value and the clock time after which it is stale."""

    value: Any
    expires_at: float

    def expired(self, now: float) -> bool:
        return now > self.expires_at


class ResponseCache:
    """Thread-safe key/value store with per-entry TTL (seconds)."""

    def __init__(self, clock: Clock = time.time) -> None:
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expired(self._clock()):
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: Any, ttl: float) -> None:
        """Store a value, replacing any previous entry and its expiry."""
        with self._lock:
            self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
