from __future__ import annotations

import threading
import time
from typing import Dict, Generic, Hashable, Optional, Tuple, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class TTLCache(Generic[K, V]):
    """
    Process-lifetime key/value store with time-bounded entries.

    Advisory only: a miss or an expired entry is never an error, callers
    recompute and insert.
    """

    def __init__(self, ttl_seconds: float) -> None:
        self.ttl_seconds = ttl_seconds
        self._entries: Dict[K, Tuple[V, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: K) -> Optional[V]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires = entry
            if time.monotonic() < expires:
                return value
            del self._entries[key]
            return None

    def insert(self, key: K, value: V) -> None:
        with self._lock:
            self._entries[key] = (value, time.monotonic() + self.ttl_seconds)

    def invalidate(self, key: K) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
