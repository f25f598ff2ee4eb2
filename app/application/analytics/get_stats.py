"""
Use case: Report the analytics engine's in-process state.

Input: None
Output: AnalyticsStats
Side effects: None.
"""

from typing import Optional

from app.application.analytics.dtos import AnalyticsStats
from app.application.analytics.memory import AnalyticsMemory
from app.infrastructure.cache.tiered_cache import TieredCache


class GetStatsUseCase:
    def __init__(self, memory: AnalyticsMemory, cache: Optional[TieredCache] = None) -> None:
        self._memory = memory
        self._cache = cache

    def execute(self) -> AnalyticsStats:
        return AnalyticsStats(
            cached_predictions=len(self._memory.predictions),
            patterns_learned=self._memory.patterns_learned,
            pools_tracked=len(self._memory.pattern_history),
            cache=self._cache.stats if self._cache is not None else {},
        )
