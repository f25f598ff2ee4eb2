"""
Data Transfer Objects for the analytics application layer.

DTOs carry data between the interface and application layers.
They are plain dataclasses with no behavior.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class PoolQuery:
    """Input DTO for every per-pool analytics request.

    Attributes:
        pool_id: 64-character pool hash.
    """

    pool_id: str


@dataclass(frozen=True)
class AnalyticsStats:
    """Output DTO summarizing the predictor's in-process state.

    Attributes:
        cached_predictions: Predictions currently held in the prediction cache.
        patterns_learned: Patterns held in the per-pool pattern history.
        pools_tracked: Pools with a pattern history entry.
        cache: Statistics of the transaction history cache.
    """

    cached_predictions: int
    patterns_learned: int
    pools_tracked: int
    cache: dict[str, Any] = field(default_factory=dict)
