"""
In-process analytics memory shared by the analytics use cases.

Holds the prediction cache and the per-pool pattern history, both kept in
ExpiringStore arenas so the maintenance jobs can sweep them by age.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from app.domain.analytics.entities import CacheEntry, Pattern, VolumePrediction
from app.infrastructure.cache.expiring_store import ExpiringStore

PREDICTION_KEY_PREFIX = "prediction:"


@dataclass
class AnalyticsMemory:
    """Prediction cache plus pattern history.

    Attributes:
        prediction_ttl: How long a cached prediction is served.
        pattern_memory: How long a pool's pattern history is retained.
    """

    prediction_ttl: timedelta = timedelta(minutes=5)
    pattern_memory: timedelta = timedelta(hours=168)
    predictions: ExpiringStore = field(default_factory=lambda: ExpiringStore(max_entries=200))
    pattern_history: ExpiringStore = field(default_factory=ExpiringStore)

    # -- predictions ----------------------------------------------------

    def cached_prediction(self, pool_id: str, now: datetime) -> Optional[VolumePrediction]:
        entry = self.predictions.get(PREDICTION_KEY_PREFIX + pool_id, now)
        return entry.payload if entry is not None else None

    def remember_prediction(self, prediction: VolumePrediction, now: datetime) -> None:
        key = PREDICTION_KEY_PREFIX + prediction.pool_id
        self.predictions.put(
            CacheEntry(
                key=key,
                payload=prediction,
                created_at=now,
                expires_at=now + self.prediction_ttl,
                identifier=prediction.pool_id,
            )
        )

    # -- pattern history -------------------------------------------------

    def remember_patterns(self, pool_id: str, patterns: list[Pattern], now: datetime) -> None:
        self.pattern_history.put(
            CacheEntry(
                key=pool_id,
                payload=list(patterns),
                created_at=now,
                expires_at=now + self.pattern_memory,
                identifier=pool_id,
            )
        )

    def patterns_for(self, pool_id: str) -> list[Pattern]:
        entry = self.pattern_history.peek(pool_id)
        return list(entry.payload) if entry is not None else []

    @property
    def patterns_learned(self) -> int:
        return sum(len(entry.payload) for entry in self.pattern_history)

    # -- maintenance -----------------------------------------------------

    def prune(self, now: datetime) -> dict[str, int]:
        """Drop stale predictions (older than 2x TTL) and old pattern history."""
        return {
            "predictions_removed": self.predictions.sweep_stale(now, ttl_factor=2.0),
            "pattern_histories_removed": self.pattern_history.sweep(now, self.pattern_memory),
        }

    def clear(self) -> None:
        self.predictions.clear()
