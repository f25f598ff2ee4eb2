"""
Pydantic schemas for analytics API request/response validation.

These schemas enforce input validation and define the API contract.
No business logic belongs here; ``from_domain`` helpers only copy fields.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from app.domain.analytics.entities import (
    HORIZONS,
    AlertUrgency,
    MarketRegime,
    Pattern,
    VolumePrediction,
)

POOL_ID_PATTERN = r"^[a-fA-F0-9]{64}$"
POOL_ID_DESCRIPTION = "64-character hex pool hash"


class HorizonValues(BaseModel):
    """One value per forecast horizon."""

    next_15min: float
    next_30min: float
    next_1hour: float
    next_4hours: float


class SignalsSchema(BaseModel):
    whale_activity: bool
    pattern_recognition: bool
    time_based_trends: bool
    volume_accumulation: bool


class RecommendationSchema(BaseModel):
    action: str
    timing: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    position_size: str


class VolumePredictionResponse(BaseModel):
    """Response schema for the volume prediction endpoint."""

    pool_id: str
    token0: str
    token1: str
    current_volume: float
    predicted_volume: HorizonValues
    confidence: HorizonValues
    trend: str
    signals: SignalsSchema
    reasoning: list[str]
    risk_factors: list[str]
    trading_recommendation: RecommendationSchema
    generated_at: datetime

    @classmethod
    def from_domain(cls, prediction: VolumePrediction) -> "VolumePredictionResponse":
        forecast = prediction.forecast
        signals = prediction.signals
        rec = prediction.recommendation
        return cls(
            pool_id=prediction.pool_id,
            token0=prediction.token0,
            token1=prediction.token1,
            current_volume=prediction.current_volume,
            predicted_volume=HorizonValues(
                **{h.value: forecast.volume(h) for h in HORIZONS}
            ),
            confidence=HorizonValues(
                **{h.value: forecast.confidence_for(h) for h in HORIZONS}
            ),
            trend=prediction.trend.value,
            signals=SignalsSchema(
                whale_activity=signals.whale_activity,
                pattern_recognition=signals.pattern_recognition,
                time_based_trends=signals.time_based_trends,
                volume_accumulation=signals.volume_accumulation,
            ),
            reasoning=list(prediction.reasoning),
            risk_factors=list(prediction.risk_factors),
            trading_recommendation=RecommendationSchema(
                action=rec.action.value,
                timing=rec.timing.value,
                confidence=rec.confidence,
                position_size=rec.position_size.value,
            ),
            generated_at=prediction.generated_at,
        )


class PatternItem(BaseModel):
    """A single detected or stored pattern."""

    pattern_id: int | None = None
    pattern_type: str
    status: str
    strength: float
    historical_success_rate: float
    confidence: float
    duration_minutes: int
    time_to_target_minutes: float
    volume_target: float
    detected_at: datetime
    predicted_completion_at: datetime

    @classmethod
    def from_domain(cls, pattern: Pattern) -> "PatternItem":
        return cls(
            pattern_id=pattern.pattern_id,
            pattern_type=pattern.pattern_type.value,
            status=pattern.status.value,
            strength=pattern.strength,
            historical_success_rate=pattern.historical_success_rate,
            confidence=pattern.confidence,
            duration_minutes=pattern.duration_minutes,
            time_to_target_minutes=pattern.time_to_target_minutes,
            volume_target=pattern.volume_target,
            detected_at=pattern.detected_at,
            predicted_completion_at=pattern.predicted_completion_at,
        )


class PatternsResponse(BaseModel):
    """Response schema for the pattern identification endpoint."""

    pool_id: str
    patterns: list[PatternItem]


class MarketRegimeResponse(BaseModel):
    """Response schema for the market regime endpoint."""

    pool_id: str
    regime: str
    confidence: float
    characteristics: list[str]
    optimal_strategies: list[str]
    risk_level: str

    @classmethod
    def from_domain(cls, pool_id: str, regime: MarketRegime) -> "MarketRegimeResponse":
        return cls(
            pool_id=pool_id,
            regime=regime.regime.value,
            confidence=regime.confidence,
            characteristics=list(regime.characteristics),
            optimal_strategies=list(regime.optimal_strategies),
            risk_level=regime.risk_level.value,
        )


class StatsResponse(BaseModel):
    """Response schema for the analytics stats endpoint."""

    cached_predictions: int
    patterns_learned: int
    pools_tracked: int
    cache: dict[str, Any]


class WhaleAlertRequest(BaseModel):
    """Request schema for publishing a whale alert.

    Attributes:
        whale_address: Trader address that triggered the alert.
        alert_type: Free-form alert category (e.g. ``large_buy``).
        pool_id: Pool the activity happened on.
        volume: Volume of the triggering activity.
        confidence: Tracker confidence in [0, 1].
        urgency: immediate, high, medium or low.
        timestamp: When the activity happened; defaults to now.
    """

    whale_address: str = Field(..., min_length=1, max_length=128)
    alert_type: str = Field(..., min_length=1, max_length=64)
    pool_id: str = Field(..., pattern=POOL_ID_PATTERN, description=POOL_ID_DESCRIPTION)
    token0: str = Field("UNKNOWN", max_length=64)
    token1: str = Field("UNKNOWN", max_length=64)
    volume: float = Field(..., ge=0.0)
    confidence: float = Field(..., ge=0.0, le=1.0)
    urgency: AlertUrgency = AlertUrgency.MEDIUM
    timestamp: datetime | None = None


class WhaleAlertAccepted(BaseModel):
    accepted: bool
    alerts_held: int


class ErrorResponse(BaseModel):
    """Standard error response returned by all error handlers."""

    error: str
    detail: str | None = None


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
