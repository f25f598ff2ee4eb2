"""
Domain service: Volume pattern detection.

Pure business logic for classifying a volume series into typed patterns.
No framework imports. No IO. No side effects.

Detects:
    - Accumulation (steadily rising volume over the last 6 buckets)
    - Breakout (latest bucket more than 2x the preceding baseline)
    - Reversal (recent 4-bucket mean moved >50% vs the previous 4)
    - Consolidation (low coefficient of variation over the last 8)
"""

from datetime import datetime
from typing import Optional, Sequence

from app.domain.analytics import volume_series
from app.domain.analytics.entities import Pattern, PatternType, utcnow

ACCUMULATION_WINDOW = 6
BREAKOUT_RECENT = 4
BREAKOUT_BASELINE = 8
REVERSAL_WINDOW = 4
CONSOLIDATION_WINDOW = 8

# Slopes within this distance of zero count as flat.
_SLOPE_EPSILON = 1e-9


def strongest(patterns: Sequence[Pattern]) -> Optional[Pattern]:
    """Return the pattern with the highest strength, or None."""
    if not patterns:
        return None
    return max(patterns, key=lambda p: p.strength)


class PatternDetector:
    """Domain service that classifies a volume series.

    Each detector is attempted once per call and several may fire on the
    same series. Input series must be ordered most recent first.
    """

    def __init__(
        self,
        accumulation_slope_scale: float = 10.0,
        breakout_ratio: float = 2.0,
        reversal_change: float = 0.5,
        consolidation_max_variation: float = 0.3,
    ) -> None:
        """Initialize the detector.

        Args:
            accumulation_slope_scale: Slope that maps to full accumulation strength.
            breakout_ratio: Latest/baseline ratio above which a breakout fires.
            reversal_change: Relative change of means above which a reversal fires.
            consolidation_max_variation: Variation below which volume is consolidating.
        """
        self._accumulation_slope_scale = accumulation_slope_scale
        self._breakout_ratio = breakout_ratio
        self._reversal_change = reversal_change
        self._consolidation_max_variation = consolidation_max_variation

    def detect(
        self, volumes: Sequence[float], now: Optional[datetime] = None
    ) -> list[Pattern]:
        """Run every detector against a series.

        Args:
            volumes: Bucket volumes, most recent first.
            now: Detection timestamp stamped on every pattern.

        Returns:
            All patterns that fired, in detector order.
        """
        detected_at = now or utcnow()
        candidates = (
            self.detect_accumulation(volumes, detected_at),
            self.detect_breakout(volumes, detected_at),
            self.detect_reversal(volumes, detected_at),
            self.detect_consolidation(volumes, detected_at),
        )
        return [p for p in candidates if p is not None]

    def detect_accumulation(
        self, volumes: Sequence[float], detected_at: datetime
    ) -> Optional[Pattern]:
        """Gradually increasing volume over the most recent buckets."""
        if len(volumes) < ACCUMULATION_WINDOW:
            return None

        recent = list(volumes[:ACCUMULATION_WINDOW])
        slope = volume_series.linear_trend(recent)
        if slope <= _SLOPE_EPSILON:
            return None

        return Pattern(
            pattern_type=PatternType.ACCUMULATION,
            strength=min(1.0, slope / self._accumulation_slope_scale),
            historical_success_rate=0.65,
            duration_minutes=ACCUMULATION_WINDOW * 60,
            time_to_target_minutes=120,
            volume_target=recent[0] * 1.5,
            detected_at=detected_at,
        )

    def detect_breakout(
        self, volumes: Sequence[float], detected_at: datetime
    ) -> Optional[Pattern]:
        """Latest bucket spiking well above the preceding baseline."""
        if len(volumes) < BREAKOUT_RECENT + BREAKOUT_BASELINE:
            return None

        baseline = volume_series.mean(
            volumes[BREAKOUT_RECENT:BREAKOUT_RECENT + BREAKOUT_BASELINE]
        )
        if baseline <= 0:
            return None

        latest = volumes[0]
        if latest <= baseline * self._breakout_ratio:
            return None

        ratio = latest / baseline
        return Pattern(
            pattern_type=PatternType.BREAKOUT,
            strength=min(1.0, ratio / 3),
            historical_success_rate=0.72,
            duration_minutes=60,
            time_to_target_minutes=30,
            volume_target=latest * 1.2,
            detected_at=detected_at,
        )

    def detect_reversal(
        self, volumes: Sequence[float], detected_at: datetime
    ) -> Optional[Pattern]:
        """Recent mean diverging sharply from the previous window's mean."""
        if len(volumes) < REVERSAL_WINDOW * 2:
            return None

        recent_avg = volume_series.mean(volumes[:REVERSAL_WINDOW])
        previous_avg = volume_series.mean(volumes[REVERSAL_WINDOW:REVERSAL_WINDOW * 2])
        if previous_avg <= 0:
            return None

        change = abs(recent_avg - previous_avg) / previous_avg
        if change <= self._reversal_change:
            return None

        return Pattern(
            pattern_type=PatternType.REVERSAL,
            strength=min(1.0, change),
            historical_success_rate=0.58,
            duration_minutes=REVERSAL_WINDOW * 60,
            time_to_target_minutes=180,
            volume_target=(recent_avg + previous_avg) / 2,
            detected_at=detected_at,
        )

    def detect_consolidation(
        self, volumes: Sequence[float], detected_at: datetime
    ) -> Optional[Pattern]:
        """Volume holding steady within a narrow band."""
        if len(volumes) < CONSOLIDATION_WINDOW:
            return None

        window = volumes[:CONSOLIDATION_WINDOW]
        if volume_series.mean(window) <= 0:
            return None

        variation = volume_series.variability(window)
        if variation >= self._consolidation_max_variation:
            return None

        return Pattern(
            pattern_type=PatternType.CONSOLIDATION,
            strength=max(0.0, 1 - variation * 2),
            historical_success_rate=0.45,
            duration_minutes=CONSOLIDATION_WINDOW * 60,
            time_to_target_minutes=240,
            volume_target=volumes[0],
            detected_at=detected_at,
        )
