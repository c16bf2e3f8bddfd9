"""
MentorMatch - Process-local TTL cache.

Entries are stored as ``key -> (value, inserted_at)``.  The clock is
injected so expiry can be exercised in tests without real time passing.
Invalidation is coarse: ``clear()`` drops every entry at once and there is
no LRU eviction.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, Hashable


class TTLCache:
    """Time-bounded key/value cache guarded by a single write lock.

    Parameters
    ----------
    ttl_seconds:
        Age after which an entry is treated as absent.
    clock:
        Zero-argument callable returning the current time in seconds.
        Defaults to ``time.monotonic``.
    """

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock or time.monotonic
        self._entries: dict[Hashable, tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, inserted_at = entry
        if self._clock() - inserted_at >= self.ttl_seconds:
            return None
        return value

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._entries[key] = (value, self._clock())

    def clear(self) -> int:
        """Drop every entry and return how many were held."""
        with self._lock:
            size = len(self._entries)
            self._entries.clear()
        return size

    def __len__(self) -> int:
        """Number of entries that have not yet expired."""
        now = self._clock()
        return sum(
            1
            for _, inserted_at in list(self._entries.values())
            if now - inserted_at < self.ttl_seconds
        )

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None
