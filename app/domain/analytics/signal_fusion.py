"""
Domain service: Multi-signal volume forecasting.

Three independent forecasters each produce a HorizonForecast:
    - Technical: linear-trend projection of recent bucket volume
    - Pattern: multiplier table keyed by the strongest detected pattern
    - Whale: aggregate volume of whale alerts on the pool

SignalFusion combines them per horizon into one forecast, weighting each
source by its fixed weight times its own confidence. Sources that have
nothing to say for a horizon (zero volume or zero confidence) are left out
of that horizon's normalizer entirely.

Pure functions of their inputs. No IO.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Sequence

from app.domain.analytics import volume_series
from app.domain.analytics.entities import (
    HORIZONS,
    AlertUrgency,
    HorizonForecast,
    Pattern,
    PatternType,
    TransactionRecord,
    WhaleAlert,
)
from app.domain.analytics.errors import ForecastSourceError
from app.domain.analytics.pattern_detector import strongest


class SourceKind(Enum):
    """Tag of a forecast source."""

    TECHNICAL = "technical"
    PATTERN = "pattern"
    WHALE = "whale"


DEFAULT_WEIGHTS: Mapping[SourceKind, float] = {
    SourceKind.TECHNICAL: 0.4,
    SourceKind.PATTERN: 0.35,
    SourceKind.WHALE: 0.25,
}


@dataclass(frozen=True)
class ForecastSource:
    """A single source's forecast, tagged with its kind and fusion weight."""

    kind: SourceKind
    forecast: HorizonForecast
    weight: float

    @classmethod
    def of(cls, kind: SourceKind, forecast: HorizonForecast) -> "ForecastSource":
        return cls(kind=kind, forecast=forecast, weight=DEFAULT_WEIGHTS[kind])


# -- Technical --------------------------------------------------------------

TECHNICAL_TREND_WINDOW = 12
# Fraction of one hour of (base + trend) expected in each horizon; the
# 4-hour horizon carries a 0.8 decay.
TECHNICAL_FRACTIONS = (0.25, 0.5, 1.0, 4 * 0.8)
TECHNICAL_CONFIDENCE = (0.75, 0.65, 0.55, 0.35)


def technical_forecast(
    recent: Sequence[TransactionRecord], historical: Sequence[TransactionRecord]
) -> HorizonForecast:
    """Project the latest bucket forward along the recent hourly trend."""
    hourly = volume_series.group_by_hour(historical)
    quarter_hourly = volume_series.group_by_quarter_hour(recent)

    trend = volume_series.linear_trend(hourly[:TECHNICAL_TREND_WINDOW])
    base = (quarter_hourly[0] if quarter_hourly else 0.0) or (
        hourly[0] if hourly else 0.0
    )

    return HorizonForecast.from_lists(
        [(base + trend) * fraction for fraction in TECHNICAL_FRACTIONS],
        TECHNICAL_CONFIDENCE,
    )


# -- Pattern ----------------------------------------------------------------

PATTERN_MULTIPLIERS: Mapping[PatternType, tuple[float, float, float, float]] = {
    PatternType.ACCUMULATION: (1.1, 1.2, 1.4, 1.8),
    PatternType.BREAKOUT: (1.5, 1.8, 2.2, 1.5),
    PatternType.DISTRIBUTION: (0.9, 0.8, 0.6, 0.4),
    PatternType.REVERSAL: (1.2, 1.1, 0.9, 0.8),
    PatternType.CONSOLIDATION: (1.0, 1.0, 1.0, 1.1),
}
PATTERN_CONFIDENCE_SCALE = (0.8, 0.7, 0.6, 0.4)
NO_PATTERN_DECAY = (0.9, 0.8, 0.7, 0.5)
NO_PATTERN_CONFIDENCE = (0.3, 0.2, 0.1, 0.05)


def pattern_forecast(
    patterns: Sequence[Pattern], current_volume: float
) -> HorizonForecast:
    """Scale current volume by the strongest pattern's multiplier row."""
    best = strongest(patterns)
    if best is None:
        return HorizonForecast.from_lists(
            [current_volume * d for d in NO_PATTERN_DECAY], NO_PATTERN_CONFIDENCE
        )

    multipliers = PATTERN_MULTIPLIERS[best.pattern_type]
    return HorizonForecast.from_lists(
        [current_volume * m for m in multipliers],
        [best.historical_success_rate * s for s in PATTERN_CONFIDENCE_SCALE],
    )


# -- Whale ------------------------------------------------------------------

WHALE_URGENCY_MULTIPLIER = 1.5
WHALE_VOLUME_DECAY = (1.0, 0.8, 0.6, 0.3)
WHALE_CONFIDENCE_SCALE = (0.9, 0.8, 0.7, 0.5)
_URGENT = (AlertUrgency.IMMEDIATE, AlertUrgency.HIGH)


def whale_forecast(alerts: Sequence[WhaleAlert], pool_id: str) -> HorizonForecast:
    """Forecast follow-through volume from whale alerts on this pool."""
    pool_alerts = [a for a in alerts if a.pool_id == pool_id]
    if not pool_alerts:
        return HorizonForecast.zero()

    total_volume = sum(a.volume for a in pool_alerts)
    average_confidence = sum(a.confidence for a in pool_alerts) / len(pool_alerts)
    multiplier = (
        WHALE_URGENCY_MULTIPLIER
        if any(a.urgency in _URGENT for a in pool_alerts)
        else 1.0
    )

    return HorizonForecast.from_lists(
        [total_volume * multiplier * d for d in WHALE_VOLUME_DECAY],
        [average_confidence * s for s in WHALE_CONFIDENCE_SCALE],
    )


# -- Fusion -----------------------------------------------------------------


class SignalFusion:
    """Combines tagged forecast sources into a single HorizonForecast."""

    def fuse(self, sources: Sequence[ForecastSource]) -> HorizonForecast:
        """Fuse sources horizon by horizon.

        For each horizon, only sources with strictly positive volume and
        confidence contribute. Fused volume is the (weight x confidence)
        weighted mean of their volumes; fused confidence is the
        weight-averaged confidence of the same sources. A horizon with no
        contributor fuses to zero volume and zero confidence.

        Raises:
            ForecastSourceError: A source has an unknown kind, a negative
                weight, or is missing a horizon.
        """
        for source in sources:
            self._validate(source)

        volumes: list[float] = []
        confidence: list[float] = []
        for horizon in HORIZONS:
            volume_sum = 0.0
            normalizer = 0.0
            weight_sum = 0.0
            for source in sources:
                volume = source.forecast.volumes[horizon]
                conf = source.forecast.confidence[horizon]
                if volume > 0 and conf > 0:
                    volume_sum += volume * source.weight * conf
                    normalizer += source.weight * conf
                    weight_sum += source.weight

            if normalizer > 0:
                volumes.append(volume_sum / normalizer)
                confidence.append(normalizer / weight_sum)
            else:
                volumes.append(0.0)
                confidence.append(0.0)

        return HorizonForecast.from_lists(volumes, confidence)

    @staticmethod
    def _validate(source: ForecastSource) -> None:
        if not isinstance(source.kind, SourceKind):
            raise ForecastSourceError(f"unknown kind {source.kind!r}")
        if source.weight < 0:
            raise ForecastSourceError(f"negative weight for {source.kind.value}")
        missing = [
            h.value
            for h in HORIZONS
            if h not in source.forecast.volumes or h not in source.forecast.confidence
        ]
        if missing:
            raise ForecastSourceError(
                f"{source.kind.value} source missing horizons {missing}"
            )
