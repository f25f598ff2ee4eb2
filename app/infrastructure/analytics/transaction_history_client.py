"""
Adapter: Transaction history HTTP client.

Implements HistoryIngestor port.
Fetches pool swap history from the explorer API and caches raw
responses in the two-tier TieredCache.

When caching, the requested window is widened to whole ``window_step``
buckets (the cache TTL by default) before it is sent and hashed, so
repeated "last N hours" queries within one bucket share a cache entry.
Records are trimmed back to the exact window after parsing.

Response envelope:
    {"success": true, "data": {"transactions": [ {...}, ... ]}}
"""

import logging
import re
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import httpx
from dateutil import parser as dateparser

from app.domain.analytics.entities import TransactionRecord
from app.domain.analytics.errors import (
    HistoryNetworkError,
    HistoryValidationError,
    InvalidPoolIdError,
)
from app.domain.analytics.ports import HistoryIngestor
from app.infrastructure.cache.tiered_cache import TieredCache, make_cache_key

logger = logging.getLogger(__name__)

TRANSACTIONS_PATH = "/explore/transactions"
POOL_HASH_RE = re.compile(r"^[a-fA-F0-9]{64}$")
MAX_LIMIT = 5000

_REQUIRED_FIELDS = ("transactionTime", "poolHash", "token0", "token1", "volume")


def validate_pool_id(pool_id: str) -> str:
    """Return ``pool_id`` unchanged if it is a 64-character hex hash."""
    if not isinstance(pool_id, str) or not POOL_HASH_RE.match(pool_id):
        raise InvalidPoolIdError(str(pool_id))
    return pool_id


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _floor(moment: datetime, step: timedelta) -> datetime:
    epoch = _as_utc(moment).timestamp()
    return datetime.fromtimestamp(epoch - epoch % step.total_seconds(), tz=timezone.utc)


def parse_transaction(raw: dict[str, Any]) -> TransactionRecord:
    """Convert one upstream transaction object into a TransactionRecord.

    Raises:
        HistoryValidationError: A required field is missing or malformed.
    """
    missing = [name for name in _REQUIRED_FIELDS if raw.get(name) is None]
    if missing:
        raise HistoryValidationError(f"transaction missing fields {missing}")

    try:
        transaction_time = _as_utc(dateparser.isoparse(str(raw["transactionTime"])))
        block = raw.get("blockNumber")
        tx_id = raw.get("id")
        return TransactionRecord(
            transaction_time=transaction_time,
            pool_id=str(raw["poolHash"]),
            token0=str(raw["token0"]),
            token1=str(raw["token1"]),
            amount0=float(raw.get("amount0") or 0.0),
            amount1=float(raw.get("amount1") or 0.0),
            volume=float(raw["volume"]),
            user_id=str(raw.get("userAddress") or ""),
            block_number=int(block) if block is not None else None,
            transaction_id=int(tx_id) if tx_id is not None else None,
        )
    except (TypeError, ValueError, OverflowError) as exc:
        raise HistoryValidationError(f"malformed transaction: {exc}") from exc


class TransactionHistoryClient(HistoryIngestor):
    """httpx implementation of the history ingestor.

    Args:
        base_url: Explorer API root, e.g. ``https://explore.example.com``.
        cache: Optional two-tier cache for raw responses.
        timeout: Request timeout in seconds.
        window_step: Bucket size for the request window; defaults to the
            cache TTL, and a zero step sends the window unchanged.
        transport: Optional httpx transport (tests inject MockTransport).
    """

    def __init__(
        self,
        base_url: str,
        cache: Optional[TieredCache] = None,
        timeout: float = 10.0,
        window_step: Optional[timedelta] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._cache = cache
        if window_step is None and cache is not None:
            window_step = cache.ttl
        self._window_step = window_step
        self._timeout = timeout
        self._transport = transport
        self._stats = {"requests": 0, "cache_hits": 0, "errors": 0}

    @property
    def stats(self) -> dict[str, int]:
        return dict(self._stats)

    async def fetch_transactions(
        self,
        pool_id: str,
        from_time: Optional[datetime] = None,
        to_time: Optional[datetime] = None,
        limit: int = 1000,
    ) -> list[TransactionRecord]:
        validate_pool_id(pool_id)
        if not 0 < limit <= MAX_LIMIT:
            raise HistoryValidationError(f"limit must be between 1 and {MAX_LIMIT}")
        if from_time and to_time and _as_utc(from_time) > _as_utc(to_time):
            raise HistoryValidationError("from_time is after to_time")

        lower, upper = self._request_window(from_time, to_time)
        params: dict[str, Any] = {"poolHash": pool_id, "limit": limit, "offset": 0}
        if lower is not None:
            params["fromTime"] = lower.isoformat()
        if upper is not None:
            params["toTime"] = upper.isoformat()

        key = make_cache_key(
            pool_id,
            limit=limit,
            fromTime=params.get("fromTime"),
            toTime=params.get("toTime"),
        )

        raw = await self._cache.aget(key) if self._cache is not None else None
        if raw is not None:
            self._stats["cache_hits"] += 1
            logger.debug("History cache hit for pool %s", pool_id[:8])
        else:
            start = time.monotonic()
            raw = await self._request(params)
            elapsed = (time.monotonic() - start) * 1000
            if self._cache is not None:
                await self._cache.aput(
                    key,
                    raw,
                    identifier=pool_id,
                    query_params={k: v for k, v in params.items() if k != "poolHash"},
                    response_time_ms=round(elapsed, 2),
                )
            logger.debug(
                "Fetched %d transactions for pool %s in %.1fms",
                len(raw),
                pool_id[:8],
                elapsed,
            )

        records = [parse_transaction(item) for item in raw]
        return self._filter(records, from_time, to_time, limit)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _request_window(
        self, from_time: Optional[datetime], to_time: Optional[datetime]
    ) -> tuple[Optional[datetime], Optional[datetime]]:
        lower = _as_utc(from_time) if from_time is not None else None
        upper = _as_utc(to_time) if to_time is not None else None
        step = self._window_step
        if step:
            if lower is not None:
                lower = _floor(lower, step)
            if upper is not None:
                upper = _floor(upper, step) + step
        return lower, upper

    async def _request(self, params: dict[str, Any]) -> list[dict[str, Any]]:
        self._stats["requests"] += 1
        url = f"{self._base_url}{TRANSACTIONS_PATH}"
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                resp = await client.get(url, params=params)
        except httpx.TimeoutException as exc:
            self._stats["errors"] += 1
            logger.warning("History request timed out for pool %s", params["poolHash"][:8])
            raise HistoryNetworkError(str(exc) or "request timed out", timeout=True) from exc
        except httpx.HTTPError as exc:
            self._stats["errors"] += 1
            logger.warning("History request failed for pool %s: %s", params["poolHash"][:8], exc)
            raise HistoryNetworkError(str(exc)) from exc

        if resp.status_code >= 500:
            self._stats["errors"] += 1
            raise HistoryNetworkError(
                f"upstream returned {resp.status_code}", status_code=resp.status_code
            )
        if resp.status_code >= 400:
            self._stats["errors"] += 1
            raise HistoryValidationError(
                f"upstream rejected request with {resp.status_code}",
                status_code=resp.status_code,
            )

        try:
            body = resp.json()
        except ValueError as exc:
            raise HistoryValidationError("response is not valid JSON") from exc

        if not isinstance(body, dict) or not body.get("success"):
            message = body.get("message") if isinstance(body, dict) else None
            raise HistoryValidationError(f"upstream error: {message or 'unsuccessful response'}")

        data = body.get("data")
        transactions = data.get("transactions") if isinstance(data, dict) else None
        if not isinstance(transactions, list):
            raise HistoryValidationError("response contains no transactions list")
        return transactions

    @staticmethod
    def _filter(
        records: list[TransactionRecord],
        from_time: Optional[datetime],
        to_time: Optional[datetime],
        limit: int,
    ) -> list[TransactionRecord]:
        if from_time is not None:
            lower = _as_utc(from_time)
            records = [r for r in records if r.transaction_time >= lower]
        if to_time is not None:
            upper = _as_utc(to_time)
            records = [r for r in records if r.transaction_time <= upper]
        records.sort(key=lambda r: r.transaction_time, reverse=True)
        return records[:limit]
