"""
Use case: Identify volume patterns for a liquidity pool.

Input: PoolQuery (pool_id)
Output: list[Pattern]
Side effects: Persists newly detected patterns (fire-and-forget) and
    records them in the in-process pattern history.
Failure cases: InvalidPoolIdError, HistoryFetchError.
"""

import asyncio
import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional

from app.application.analytics.dtos import PoolQuery
from app.application.analytics.memory import AnalyticsMemory
from app.domain.analytics import volume_series
from app.domain.analytics.entities import Pattern, utcnow
from app.domain.analytics.pattern_detector import PatternDetector
from app.domain.analytics.ports import HistoryIngestor, PatternStore

logger = logging.getLogger(__name__)

MIN_PATTERN_TRANSACTIONS = 50
PATTERN_HISTORY_LIMIT = 2000


class IdentifyPatternsUseCase:
    """Detects patterns from a pool's hourly volume history.

    Active patterns already in the store short-circuit detection. Store
    reads and writes are best-effort: a failing store never blocks the
    result.
    """

    def __init__(
        self,
        history: HistoryIngestor,
        memory: AnalyticsMemory,
        pattern_store: Optional[PatternStore] = None,
        detector: Optional[PatternDetector] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._history = history
        self._memory = memory
        self._store = pattern_store
        self._detector = detector or PatternDetector()
        self._clock = clock
        self._background_tasks: set[asyncio.Task] = set()  # prevent GC

    async def execute(self, query: PoolQuery) -> list[Pattern]:
        """Run the pattern identification use case.

        Args:
            query: The request containing the pool hash.

        Returns:
            Active stored patterns, or freshly detected ones (possibly empty).
        """
        pool_id = query.pool_id
        now = self._clock()

        stored = await self._load_stored(pool_id, now)
        if stored:
            logger.debug("Using %d stored patterns for pool %s", len(stored), pool_id[:8])
            self._memory.remember_patterns(pool_id, stored, now)
            return stored

        transactions = await self._history.fetch_transactions(
            pool_id,
            from_time=now - self._memory.pattern_memory,
            to_time=now,
            limit=PATTERN_HISTORY_LIMIT,
        )
        if len(transactions) < MIN_PATTERN_TRANSACTIONS:
            logger.debug(
                "Only %d transactions for pool %s, skipping pattern detection",
                len(transactions),
                pool_id[:8],
            )
            return []

        hourly = volume_series.group_by_hour(transactions)
        patterns = [
            replace(p, pool_id=pool_id) for p in self._detector.detect(hourly, now)
        ]

        for pattern in patterns:
            self._persist(pool_id, pattern)

        self._memory.remember_patterns(pool_id, patterns, now)
        logger.info(
            "Identified %d patterns for pool %s", len(patterns), pool_id[:8]
        )
        return patterns

    async def flush(self) -> None:
        """Wait for outstanding pattern writes to finish."""
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)

    def expire(self, now: datetime) -> int:
        """Close elapsed patterns in the store. Returns how many were closed."""
        if self._store is None:
            return 0
        return self._store.expire_patterns(now)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _load_stored(self, pool_id: str, now: datetime) -> list[Pattern]:
        if self._store is None:
            return []
        try:
            patterns = await asyncio.to_thread(self._store.get_active_patterns, pool_id, now)
        except Exception as exc:
            logger.warning("Pattern store read failed for pool %s: %s", pool_id[:8], exc)
            return []
        return [p for p in patterns if not p.is_expired(now)]

    def _persist(self, pool_id: str, pattern: Pattern) -> None:
        if self._store is None:
            return
        task = asyncio.create_task(self._store_pattern(pool_id, pattern))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def _store_pattern(self, pool_id: str, pattern: Pattern) -> None:
        try:
            await asyncio.to_thread(self._store.store_pattern, pool_id, pattern)
        except Exception as exc:
            logger.warning(
                "Failed to store %s pattern for pool %s: %s",
                pattern.pattern_type.value,
                pool_id[:8],
                exc,
            )
