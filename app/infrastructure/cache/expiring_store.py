"""
Arena-style in-process store with TTL expiry and capacity eviction.

Entries are held in a single key -> CacheEntry map whose iteration order
is creation order, so eviction of the oldest entries is a walk from the
front. Expiry and eviction take an explicit ``now`` so they can be driven
and tested without wall-clock timers.

Every method completes in one synchronous step; callers on the event
loop never observe a half-applied mutation.
"""

from datetime import datetime, timedelta
from typing import Iterator, Optional

from app.domain.analytics.entities import CacheEntry


class ExpiringStore:
    """Key -> CacheEntry map ordered by creation time.

    Attributes:
        max_entries: Capacity cap; None means unbounded.
    """

    def __init__(self, max_entries: Optional[int] = None) -> None:
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._entries: dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[CacheEntry]:
        return iter(list(self._entries.values()))

    # ------------------------------------------------------------------
    # Reads / writes
    # ------------------------------------------------------------------

    def put(self, entry: CacheEntry) -> list[str]:
        """Insert or replace an entry, then enforce the capacity cap.

        The entry is placed by its ``created_at``, so a replaced key moves
        to the back only when the new entry is the newest, and an older
        entry copied in from elsewhere is not treated as fresh.

        Returns:
            Keys evicted to make room.
        """
        self._entries.pop(entry.key, None)
        newest = next(reversed(self._entries.values()), None)
        self._entries[entry.key] = entry
        if newest is not None and entry.created_at < newest.created_at:
            self._entries = dict(
                sorted(self._entries.items(), key=lambda item: item[1].created_at)
            )
        return self.evict_overflow()

    def get(self, key: str, now: datetime) -> Optional[CacheEntry]:
        """Return the entry for ``key`` unless it is missing or expired."""
        entry = self._entries.get(key)
        if entry is None or entry.is_expired(now):
            return None
        return entry

    def peek(self, key: str) -> Optional[CacheEntry]:
        """Return the entry for ``key`` regardless of expiry."""
        return self._entries.get(key)

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def oldest(self) -> Optional[CacheEntry]:
        return next(iter(self._entries.values()), None)

    # ------------------------------------------------------------------
    # Expiry / eviction
    # ------------------------------------------------------------------

    def sweep_stale(self, now: datetime, ttl_factor: float = 2.0) -> int:
        """Drop entries older than ``ttl_factor`` times their own TTL.

        Returns:
            Number of entries removed.
        """
        stale = [
            key
            for key, entry in self._entries.items()
            if entry.age(now) > (entry.expires_at - entry.created_at) * ttl_factor
        ]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def sweep(self, now: datetime, max_age: timedelta) -> int:
        """Drop entries whose age exceeds ``max_age``."""
        stale = [key for key, entry in self._entries.items() if entry.age(now) > max_age]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def evict_overflow(self) -> list[str]:
        """Evict oldest-created entries until the store is within capacity."""
        if self.max_entries is None:
            return []
        evicted: list[str] = []
        while len(self._entries) > self.max_entries:
            key = next(iter(self._entries))
            del self._entries[key]
            evicted.append(key)
        return evicted
