"""
Time-bounded memoization of search results.
"""

from typing import Callable, Optional
import time


class SearchCache:
    """TTL cache keyed by normalized search parameters."""

    def __init__(
        self,
        ttl_seconds: float = 300,
        clock: Optional[Callable[[], float]] = None,
        max_entries: int = 256,
    ):
        """
        Args:
            ttl_seconds: Entry lifetime; an entry is stale once its age reaches this
            clock: Monotonic clock in seconds
            max_entries: Upper bound on held entries; the oldest writes go first
        """
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock or time.monotonic
        self._entries: dict[str, tuple[float, object]] = {}

    def _expired(self, stored_at: float, now: float) -> bool:
        return now - stored_at >= self.ttl_seconds

    def get(self, key: str):
        """Return the cached value, or None if missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        stored_at, value = entry
        if self._expired(stored_at, self._clock()):
            del self._entries[key]
            return None

        return value

    def set(self, key: str, value) -> None:
        self.purge_expired()
        # Re-inserting moves the key to the end, so insertion order is write order
        self._entries.pop(key, None)
        self._entries[key] = (self._clock(), value)

        while len(self._entries) > self.max_entries:
            del self._entries[next(iter(self._entries))]

    def purge_expired(self) -> int:
        """Drop every expired entry; returns how many were dropped."""
        now = self._clock()
        stale = [key for key, (stored_at, _) in self._entries.items() if self._expired(stored_at, now)]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        now = self._clock()
        return len([1 for stored_at, _ in self._entries.values() if not self._expired(stored_at, now)])
