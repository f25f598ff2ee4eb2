"""
Use case: Drop cached predictions and cached transaction history.

Input: None
Output: None
Side effects: Empties the prediction cache and the volatile history cache.
    Pattern history and the durable cache tier are left alone.
"""

import logging
from typing import Optional

from app.application.analytics.memory import AnalyticsMemory
from app.infrastructure.cache.tiered_cache import TieredCache

logger = logging.getLogger(__name__)


class ClearCacheUseCase:
    def __init__(self, memory: AnalyticsMemory, cache: Optional[TieredCache] = None) -> None:
        self._memory = memory
        self._cache = cache

    def execute(self) -> None:
        self._memory.clear()
        if self._cache is not None:
            self._cache.clear()
        logger.info("Analytics caches cleared")
