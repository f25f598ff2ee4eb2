"""
Two-tier cache for upstream query results.

Implements:
- Volatile tier: in-process ExpiringStore (capacity-capped, age-evicted)
- Durable tier: optional DurableCacheStore (survives restarts)
- Deterministic, order-independent key derivation
- Background sweep hook (``invalidate_expired``)

Reads prefer the durable tier and fall back to the volatile tier; a
durable hit is copied forward into the volatile tier. Writes always land
in the volatile tier; the durable write is best-effort and a failure is
logged, never raised. The two tiers are not kept strictly consistent.

``aget`` and ``aput`` are the event-loop variants: durable IO runs in a
worker thread while every volatile-tier mutation stays on the loop.
"""

import asyncio
import hashlib
import json
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from app.domain.analytics.entities import CacheEntry, utcnow
from app.domain.analytics.ports import DurableCacheStore
from app.infrastructure.cache.expiring_store import ExpiringStore

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(minutes=5)
DEFAULT_MAX_ENTRIES = 200
KEY_PREFIX = "tx_cache_"


def _normalize(value: Any) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (dict, list, tuple, set)):
        if isinstance(value, set):
            value = sorted(value, key=str)
        return json.dumps(value, sort_keys=True, default=str)
    return str(value)


def make_cache_key(
    identifier: str, user_id: Optional[str] = None, **params: Any
) -> str:
    """Build a deterministic cache key from a query.

    Parameters are sorted by name and ``None`` values are dropped, so two
    logically identical queries always hash to the same key no matter how
    their arguments were assembled.

    Args:
        identifier: Pool hash (or user address for user-scoped queries).
        user_id: Optional user scope; defaults to ``all``.
        **params: Remaining query parameters.

    Returns:
        Key of the form ``tx_cache_<hex>``.
    """
    key_data = {"poolHash": identifier, "userAddress": user_id or "all"}
    key_data.update({k: v for k, v in params.items() if v is not None})
    key_string = "|".join(f"{k}:{_normalize(key_data[k])}" for k in sorted(key_data))
    digest = hashlib.sha256(key_string.encode("utf-8")).hexdigest()
    return f"{KEY_PREFIX}{digest[:24]}"


class TieredCache:
    """Volatile + durable cache keyed by query hash.

    Usage:
        cache = TieredCache(durable=DurableCacheRepository(engine))
        key = make_cache_key(pool_id, limit=1000)
        payload = await cache.aget(key)
        if payload is None:
            payload = await fetch()
            await cache.aput(key, payload, identifier=pool_id)
    """

    def __init__(
        self,
        durable: Optional[DurableCacheStore] = None,
        ttl: timedelta = DEFAULT_TTL,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._durable = durable
        self._ttl = ttl
        self._clock = clock
        self._volatile = ExpiringStore(max_entries=max_entries)
        self._stats = {"hits": 0, "durable_hits": 0, "misses": 0, "durable_errors": 0}

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    @property
    def size(self) -> int:
        return len(self._volatile)

    @property
    def stats(self) -> dict[str, Any]:
        lookups = self._stats["hits"] + self._stats["misses"]
        return {
            **self._stats,
            "size": len(self._volatile),
            "max_entries": self._volatile.max_entries,
            "hit_rate": self._stats["hits"] / lookups if lookups else 0.0,
        }

    # ------------------------------------------------------------------
    # Reads / writes
    # ------------------------------------------------------------------

    def get(self, key: str) -> Optional[Any]:
        """Return the cached payload for ``key``, or None on miss."""
        now = self._clock()
        return self._resolve(key, self._load_durable(key, now), now)

    async def aget(self, key: str) -> Optional[Any]:
        """Like ``get``, with the durable lookup off the event loop."""
        now = self._clock()
        entry = None
        if self._durable is not None:
            try:
                entry = await asyncio.to_thread(self._durable.load, key, now)
            except Exception:
                self._stats["durable_errors"] += 1
                logger.warning("Durable cache read failed for key %s", key)
        return self._resolve(key, entry, now)

    def put(
        self,
        key: str,
        payload: Any,
        ttl: Optional[timedelta] = None,
        *,
        identifier: Optional[str] = None,
        user_id: Optional[str] = None,
        query_params: Optional[dict[str, Any]] = None,
        response_time_ms: float = 0.0,
    ) -> CacheEntry:
        """Store a payload in the volatile tier and, best-effort, the durable tier."""
        entry = self._put_volatile(
            key, payload, ttl, identifier, user_id, query_params, response_time_ms
        )
        if self._durable is not None:
            try:
                self._durable.save(entry)
            except Exception:
                self._stats["durable_errors"] += 1
                logger.warning("Durable cache write failed for key %s", key)
        return entry

    async def aput(
        self,
        key: str,
        payload: Any,
        ttl: Optional[timedelta] = None,
        *,
        identifier: Optional[str] = None,
        user_id: Optional[str] = None,
        query_params: Optional[dict[str, Any]] = None,
        response_time_ms: float = 0.0,
    ) -> CacheEntry:
        """Like ``put``, with the durable write off the event loop."""
        entry = self._put_volatile(
            key, payload, ttl, identifier, user_id, query_params, response_time_ms
        )
        if self._durable is not None:
            try:
                await asyncio.to_thread(self._durable.save, entry)
            except Exception:
                self._stats["durable_errors"] += 1
                logger.warning("Durable cache write failed for key %s", key)
        return entry

    def delete(self, key: str) -> bool:
        return self._volatile.delete(key)

    def clear(self) -> None:
        """Drop every volatile entry. The durable tier expires on its own."""
        self._volatile.clear()
        logger.debug("Volatile cache cleared")

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def invalidate_expired(self) -> int:
        """Sweep stale entries from both tiers.

        Volatile entries older than twice their TTL are removed and the
        capacity cap is re-applied. Durable rows past their expiry are
        purged best-effort.

        Returns:
            Number of volatile entries removed.
        """
        now = self._clock()
        removed = self._volatile.sweep_stale(now, ttl_factor=2.0)
        removed += len(self._volatile.evict_overflow())

        if self._durable is not None:
            try:
                purged = self._durable.purge_expired(now)
                if purged:
                    logger.debug("Purged %d expired durable cache rows", purged)
            except Exception:
                self._stats["durable_errors"] += 1
                logger.warning("Durable cache purge failed")

        if removed:
            logger.info("Cache sweep removed %d entries", removed)
        return removed

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _resolve(
        self, key: str, durable_entry: Optional[CacheEntry], now: datetime
    ) -> Optional[Any]:
        if durable_entry is not None and not durable_entry.is_expired(now):
            self._stats["hits"] += 1
            self._stats["durable_hits"] += 1
            self._volatile.put(durable_entry)
            logger.debug("Durable cache hit for key %s", key)
            return durable_entry.payload

        entry = self._volatile.get(key, now)
        if entry is not None:
            self._stats["hits"] += 1
            logger.debug("Memory cache hit for key %s", key)
            return entry.payload

        self._stats["misses"] += 1
        return None

    def _put_volatile(
        self,
        key: str,
        payload: Any,
        ttl: Optional[timedelta],
        identifier: Optional[str],
        user_id: Optional[str],
        query_params: Optional[dict[str, Any]],
        response_time_ms: float,
    ) -> CacheEntry:
        now = self._clock()
        entry = CacheEntry(
            key=key,
            payload=payload,
            created_at=now,
            expires_at=now + (ttl if ttl is not None else self._ttl),
            identifier=identifier,
            user_id=user_id,
            query_params=dict(query_params or {}),
            response_time_ms=response_time_ms,
        )
        evicted = self._volatile.put(entry)
        if evicted:
            logger.debug("Evicted %d oldest cache entries", len(evicted))
        return entry

    def _load_durable(self, key: str, now: datetime) -> Optional[CacheEntry]:
        if self._durable is None:
            return None
        try:
            entry = self._durable.load(key, now)
        except Exception:
            self._stats["durable_errors"] += 1
            logger.warning("Durable cache read failed for key %s", key)
            return None
        if entry is None or entry.is_expired(now):
            return None
        return entry
