"""
Domain entities for the volume analytics bounded context.

Entities represent core business objects with identity and lifecycle.
They contain no framework imports and no IO operations.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Mapping, Optional, Sequence

from app.domain.analytics.errors import PatternLifecycleError


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class PatternType(Enum):
    """Classified shape of a volume time-series."""

    ACCUMULATION = "accumulation"
    DISTRIBUTION = "distribution"
    BREAKOUT = "breakout"
    REVERSAL = "reversal"
    CONSOLIDATION = "consolidation"


class PatternStatus(Enum):
    """Lifecycle state of a detected pattern."""

    DETECTED = "detected"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    INVALIDATED = "invalidated"


ACTIVE_PATTERN_STATUSES = (PatternStatus.DETECTED, PatternStatus.CONFIRMED)


class Horizon(Enum):
    """Fixed forecast windows, ordered from shortest to longest."""

    NEXT_15MIN = "next_15min"
    NEXT_30MIN = "next_30min"
    NEXT_1HOUR = "next_1hour"
    NEXT_4HOURS = "next_4hours"

    @property
    def minutes(self) -> int:
        return _HORIZON_MINUTES[self]


_HORIZON_MINUTES = {
    Horizon.NEXT_15MIN: 15,
    Horizon.NEXT_30MIN: 30,
    Horizon.NEXT_1HOUR: 60,
    Horizon.NEXT_4HOURS: 240,
}

HORIZONS: tuple[Horizon, ...] = tuple(Horizon)


class Trend(Enum):
    """Trend label derived from the fused forecast."""

    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"
    SPIKE_EXPECTED = "spike_expected"
    DECLINE_EXPECTED = "decline_expected"


class TradeAction(Enum):
    """Discrete trading action."""

    ENTER_LONG = "enter_long"
    ENTER_SHORT = "enter_short"
    HOLD = "hold"
    EXIT = "exit"
    WAIT = "wait"


class TradeTiming(Enum):
    """How soon the recommended action should be taken."""

    IMMEDIATE = "immediate"
    WITHIN_15MIN = "within_15min"
    WITHIN_1HOUR = "within_1hour"
    END_OF_DAY = "end_of_day"


class PositionSize(Enum):
    """Suggested position size bucket."""

    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class RiskLevel(Enum):
    """Coarse risk label."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RegimeType(Enum):
    """Coarse label for current market behavior."""

    TRENDING = "trending"
    RANGING = "ranging"
    VOLATILE = "volatile"
    QUIET = "quiet"


class AlertUrgency(Enum):
    """Urgency attached to a whale alert."""

    IMMEDIATE = "immediate"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class TransactionRecord:
    """A single swap executed against a liquidity pool."""

    transaction_time: datetime
    pool_id: str
    token0: str
    token1: str
    amount0: float
    amount1: float
    volume: float
    user_id: str
    block_number: Optional[int] = None
    transaction_id: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "transactionTime": self.transaction_time.isoformat(),
            "poolHash": self.pool_id,
            "token0": self.token0,
            "token1": self.token1,
            "amount0": self.amount0,
            "amount1": self.amount1,
            "volume": self.volume,
            "userAddress": self.user_id,
            "blockNumber": self.block_number,
            "id": self.transaction_id,
        }


@dataclass(frozen=True)
class Pattern:
    """A classified shape in a pool's volume series.

    Patterns are created in the ``detected`` state and move to
    ``confirmed`` on external validation, then to ``completed`` or
    ``invalidated`` once their predicted window has elapsed.

    Attributes:
        pattern_type: The classified shape.
        strength: How pronounced the shape is, in [0, 1].
        historical_success_rate: Prior hit rate of this shape, in [0, 1].
        duration_minutes: Span of the series the shape covers.
        time_to_target_minutes: Minutes until the shape is expected to play out.
        volume_target: Expected bucket volume when it does.
    """

    pattern_type: PatternType
    strength: float
    historical_success_rate: float
    duration_minutes: int
    time_to_target_minutes: float
    volume_target: float
    status: PatternStatus = PatternStatus.DETECTED
    detected_at: datetime = field(default_factory=utcnow)
    pool_id: Optional[str] = None
    pattern_id: Optional[int] = None

    def __post_init__(self) -> None:
        if not isinstance(self.pattern_type, PatternType):
            raise ValueError(f"Unknown pattern type: {self.pattern_type!r}")
        if not 0.0 <= self.strength <= 1.0:
            raise ValueError(f"Pattern strength out of range: {self.strength}")
        if not 0.0 <= self.historical_success_rate <= 1.0:
            raise ValueError(
                f"Historical success rate out of range: {self.historical_success_rate}"
            )
        if self.time_to_target_minutes < 0:
            raise ValueError("time_to_target_minutes must be non-negative")

    @property
    def confidence(self) -> float:
        return min(1.0, self.strength * self.historical_success_rate)

    @property
    def predicted_completion_at(self) -> datetime:
        return self.detected_at + timedelta(minutes=self.time_to_target_minutes)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_PATTERN_STATUSES

    def is_expired(self, now: datetime) -> bool:
        return now > self.predicted_completion_at

    def confirm(self) -> "Pattern":
        """Mark the pattern as externally validated."""
        return self._transition(PatternStatus.CONFIRMED)

    def complete(self) -> "Pattern":
        """Mark the pattern as played out."""
        return self._transition(PatternStatus.COMPLETED)

    def invalidate(self) -> "Pattern":
        """Mark the pattern as not having played out."""
        return self._transition(PatternStatus.INVALIDATED)

    def _transition(self, target: PatternStatus) -> "Pattern":
        if not self.is_active:
            raise PatternLifecycleError(self.status.value, target.value)
        return replace(self, status=target)


@dataclass(frozen=True)
class HorizonForecast:
    """Predicted volume and confidence for each fixed horizon."""

    volumes: Mapping[Horizon, float]
    confidence: Mapping[Horizon, float]

    @classmethod
    def from_lists(
        cls, volumes: Sequence[float], confidence: Sequence[float]
    ) -> "HorizonForecast":
        """Build a forecast from per-horizon sequences (15m, 30m, 1h, 4h).

        Volumes are floored at zero and confidences clamped to [0, 1].
        """
        if len(volumes) != len(HORIZONS) or len(confidence) != len(HORIZONS):
            raise ValueError("Expected one value per horizon")
        return cls(
            volumes={h: max(0.0, float(v)) for h, v in zip(HORIZONS, volumes)},
            confidence={
                h: min(1.0, max(0.0, float(c))) for h, c in zip(HORIZONS, confidence)
            },
        )

    @classmethod
    def zero(cls) -> "HorizonForecast":
        return cls.from_lists([0.0] * len(HORIZONS), [0.0] * len(HORIZONS))

    def volume(self, horizon: Horizon) -> float:
        return self.volumes[horizon]

    def confidence_for(self, horizon: Horizon) -> float:
        return self.confidence[horizon]


@dataclass(frozen=True)
class VolumeSignals:
    """Presence bitset of the independent volume signals."""

    whale_activity: bool = False
    pattern_recognition: bool = False
    time_based_trends: bool = False
    volume_accumulation: bool = False

    @property
    def count(self) -> int:
        return sum(
            (
                self.whale_activity,
                self.pattern_recognition,
                self.time_based_trends,
                self.volume_accumulation,
            )
        )


@dataclass(frozen=True)
class TradingRecommendation:
    """Actionable output of the recommendation engine."""

    action: TradeAction
    timing: TradeTiming
    confidence: float
    position_size: PositionSize


@dataclass(frozen=True)
class VolumePrediction:
    """Multi-horizon volume forecast for a pool, with its recommendation."""

    pool_id: str
    token0: str
    token1: str
    current_volume: float
    forecast: HorizonForecast
    trend: Trend
    signals: VolumeSignals
    reasoning: list[str]
    risk_factors: list[str]
    recommendation: TradingRecommendation
    generated_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class WhaleAlert:
    """Notable activity by a large trader on a pool."""

    whale_address: str
    alert_type: str
    pool_id: str
    token0: str
    token1: str
    volume: float
    confidence: float
    urgency: AlertUrgency
    timestamp: datetime


@dataclass(frozen=True)
class MarketRegime:
    """Coarse classification of current market behavior for a pool."""

    regime: RegimeType
    confidence: float
    characteristics: list[str]
    optimal_strategies: list[str]
    risk_level: RiskLevel


@dataclass
class CacheEntry:
    """A cached payload with its expiry metadata.

    ``identifier`` is the pool (or user) the query was made for; it and
    ``query_params`` are kept for the durable tier's audit columns.
    """

    key: str
    payload: Any
    created_at: datetime
    expires_at: datetime
    identifier: Optional[str] = None
    user_id: Optional[str] = None
    query_params: dict[str, Any] = field(default_factory=dict)
    response_time_ms: float = 0.0

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def age(self, now: datetime) -> timedelta:
        return now - self.created_at
