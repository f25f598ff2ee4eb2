"""
Adapter: Durable cache repository.

Implements DurableCacheStore port.
Responsible for persisting cached upstream query results in the
`transaction_cache` table so they survive process restarts.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Engine,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    delete,
    func,
    insert,
    select,
    update,
)
from sqlalchemy.exc import SQLAlchemyError

from app.domain.analytics.entities import CacheEntry
from app.domain.analytics.errors import PersistenceError
from app.domain.analytics.ports import DurableCacheStore

logger = logging.getLogger(__name__)

metadata = MetaData()

transaction_cache = Table(
    "transaction_cache",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("cache_key", String(255), nullable=False, unique=True),
    Column("pool_hash", String(64)),
    Column("user_address", String(128)),
    Column("query_params", Text, nullable=False, default="{}"),
    Column("payload", Text, nullable=False),
    Column("total_count", Integer),
    Column("returned_count", Integer),
    Column("is_complete", Boolean, nullable=False, default=False),
    Column("expires_at", DateTime, nullable=False, index=True),
    Column("api_response_time_ms", Float, nullable=False, default=0.0),
    Column("hit_count", Integer, nullable=False, default=0),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
    Column("last_accessed_at", DateTime),
)


def _to_db(moment: datetime) -> datetime:
    """Store every timestamp as naive UTC so comparisons work on any backend."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def _from_db(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class DurableCacheRepository(DurableCacheStore):
    """SQLAlchemy implementation of the durable cache tier.

    Payloads and query parameters are stored as JSON text. Every failure
    is surfaced as PersistenceError; the tiered cache decides whether to
    tolerate it.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def ensure_tables(self) -> None:
        """Create the cache table if it does not exist."""
        metadata.create_all(self._engine, tables=[transaction_cache])
        logger.info("transaction_cache table ready")

    def load(self, key: str, now: datetime) -> Optional[CacheEntry]:
        """Return a non-expired entry and bump its access counters.

        Args:
            key: Cache key.
            now: Reference time for expiry.

        Returns:
            The cached entry, or None when missing or expired.
        """
        try:
            with self._engine.begin() as conn:
                row = conn.execute(
                    select(transaction_cache).where(
                        transaction_cache.c.cache_key == key,
                        transaction_cache.c.expires_at > _to_db(now),
                    )
                ).mappings().first()
                if row is None:
                    return None
                conn.execute(
                    update(transaction_cache)
                    .where(transaction_cache.c.id == row["id"])
                    .values(
                        hit_count=transaction_cache.c.hit_count + 1,
                        last_accessed_at=_to_db(now),
                    )
                )
        except SQLAlchemyError as exc:
            raise PersistenceError("load", str(exc)) from exc

        return CacheEntry(
            key=row["cache_key"],
            payload=json.loads(row["payload"]),
            created_at=_from_db(row["created_at"]),
            expires_at=_from_db(row["expires_at"]),
            identifier=row["pool_hash"],
            user_id=row["user_address"],
            query_params=json.loads(row["query_params"] or "{}"),
            response_time_ms=row["api_response_time_ms"] or 0.0,
        )

    def save(self, entry: CacheEntry) -> None:
        """Insert the entry, or overwrite the row that has the same key."""
        values = self._row_values(entry)
        try:
            with self._engine.begin() as conn:
                existing = conn.execute(
                    select(transaction_cache.c.id).where(
                        transaction_cache.c.cache_key == entry.key
                    )
                ).scalar()
                if existing is None:
                    conn.execute(
                        insert(transaction_cache).values(
                            cache_key=entry.key,
                            created_at=_to_db(entry.created_at),
                            hit_count=0,
                            **values,
                        )
                    )
                else:
                    conn.execute(
                        update(transaction_cache)
                        .where(transaction_cache.c.id == existing)
                        .values(**values)
                    )
        except (SQLAlchemyError, TypeError, ValueError) as exc:
            raise PersistenceError("save", str(exc)) from exc

    def purge_expired(self, now: datetime) -> int:
        try:
            with self._engine.begin() as conn:
                result = conn.execute(
                    delete(transaction_cache).where(
                        transaction_cache.c.expires_at < _to_db(now)
                    )
                )
        except SQLAlchemyError as exc:
            raise PersistenceError("purge_expired", str(exc)) from exc
        return result.rowcount or 0

    def count(self) -> int:
        with self._engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(transaction_cache)).scalar_one()

    @staticmethod
    def _row_values(entry: CacheEntry) -> dict[str, Any]:
        returned: Optional[int] = (
            len(entry.payload) if isinstance(entry.payload, list) else None
        )
        limit = entry.query_params.get("limit")
        is_complete = (
            returned is not None and isinstance(limit, int) and returned < limit
        )
        return {
            "pool_hash": entry.identifier,
            "user_address": entry.user_id,
            "query_params": json.dumps(entry.query_params, sort_keys=True, default=str),
            "payload": json.dumps(entry.payload, default=str),
            "total_count": returned,
            "returned_count": returned,
            "is_complete": is_complete,
            "expires_at": _to_db(entry.expires_at),
            "api_response_time_ms": entry.response_time_ms,
            "updated_at": _to_db(entry.created_at),
        }
