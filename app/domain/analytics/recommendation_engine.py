"""
Domain service: Trading recommendation.

Deterministic decision table over the fused trend label, the 4-bit
signal-presence indicator and the number of risk factors.
Risk always dominates confidence upside.
"""

from typing import Sequence

from app.domain.analytics import volume_series
from app.domain.analytics.entities import (
    Horizon,
    HorizonForecast,
    Pattern,
    PositionSize,
    TradeAction,
    TradeTiming,
    TradingRecommendation,
    TransactionRecord,
    Trend,
    VolumeSignals,
    WhaleAlert,
)

MIN_CONFIDENCE = 0.1
MAX_CONFIDENCE = 0.9
HIGH_RISK_CONFIDENCE_CAP = 0.5
STRONG_PATTERN_STRENGTH = 0.7
MIN_RECENT_TRANSACTIONS = 10


def _clamp(value: float) -> float:
    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, value))


class RecommendationEngine:
    """Turns a fused forecast and its context into a trading recommendation."""

    # ------------------------------------------------------------------
    # Signals and risks
    # ------------------------------------------------------------------

    def identify_signals(
        self,
        recent: Sequence[TransactionRecord],
        historical: Sequence[TransactionRecord],
        alerts: Sequence[WhaleAlert],
        patterns: Sequence[Pattern],
    ) -> VolumeSignals:
        """Compute the four signal-presence flags."""
        return VolumeSignals(
            whale_activity=len(alerts) > 0,
            pattern_recognition=any(
                p.strength > STRONG_PATTERN_STRENGTH for p in patterns
            ),
            time_based_trends=self._has_time_based_trends(historical),
            volume_accumulation=self._has_volume_accumulation(recent),
        )

    def identify_risk_factors(
        self,
        recent: Sequence[TransactionRecord],
        patterns: Sequence[Pattern],
        signals: VolumeSignals,
    ) -> list[str]:
        """List human-readable risk factors. Their count drives confidence."""
        risks: list[str] = []

        if len(recent) < MIN_RECENT_TRANSACTIONS:
            risks.append("Limited recent transaction data")

        quarter_hourly = volume_series.group_by_quarter_hour(recent)
        if volume_series.variability(quarter_hourly) > 0.8:
            risks.append("High volume volatility detected")

        if not patterns:
            risks.append("No recognizable patterns found")

        if not signals.whale_activity and not signals.pattern_recognition:
            risks.append("Low signal strength - prediction less reliable")

        return risks

    @staticmethod
    def _has_time_based_trends(transactions: Sequence[TransactionRecord]) -> bool:
        # Uneven volume across hours of the day
        return volume_series.variability(volume_series.hour_of_day_totals(transactions)) > 0.5

    @staticmethod
    def _has_volume_accumulation(transactions: Sequence[TransactionRecord]) -> bool:
        if len(transactions) < MIN_RECENT_TRANSACTIONS:
            return False
        ordered = sorted(transactions, key=lambda t: t.transaction_time, reverse=True)
        return volume_series.linear_trend([t.volume for t in ordered]) > 0

    # ------------------------------------------------------------------
    # Trend
    # ------------------------------------------------------------------

    def determine_trend(
        self,
        forecast: HorizonForecast,
        signals: VolumeSignals,
        current_volume: float,
        baseline: float,
    ) -> Trend:
        """Label the trend from next-hour volume relative to the reference level."""
        reference = max(current_volume, baseline)
        ratio = forecast.volume(Horizon.NEXT_1HOUR) / reference if reference > 0 else 0.0

        if signals.whale_activity and ratio > 2.0:
            return Trend.SPIKE_EXPECTED
        if ratio > 1.5:
            return Trend.BULLISH
        if ratio < 0.5:
            return Trend.DECLINE_EXPECTED
        if ratio < 0.8:
            return Trend.BEARISH
        return Trend.NEUTRAL

    # ------------------------------------------------------------------
    # Recommendation
    # ------------------------------------------------------------------

    def recommend(
        self, trend: Trend, signals: VolumeSignals, risk_factors: Sequence[str]
    ) -> TradingRecommendation:
        """Apply the decision table.

        Args:
            trend: Fused trend label.
            signals: Signal-presence flags.
            risk_factors: Identified risks.

        Returns:
            The action, timing, confidence and position size.
        """
        signal_count = signals.count
        risk_count = len(risk_factors)

        action = TradeAction.WAIT
        timing = TradeTiming.END_OF_DAY
        size = PositionSize.SMALL
        confidence = _clamp(signal_count * 0.2 - risk_count * 0.1 + 0.5)

        if trend is Trend.SPIKE_EXPECTED and signal_count >= 3:
            action = TradeAction.ENTER_LONG
            timing = TradeTiming.IMMEDIATE
            size = PositionSize.LARGE if risk_count <= 1 else PositionSize.MEDIUM
            confidence = _clamp(confidence + 0.1)
        elif trend is Trend.BULLISH and signal_count >= 2:
            action = TradeAction.ENTER_LONG
            timing = TradeTiming.WITHIN_15MIN
            size = PositionSize.MEDIUM if risk_count <= 2 else PositionSize.SMALL
        elif trend is Trend.DECLINE_EXPECTED and signal_count >= 2:
            # Shorts are always sized conservatively
            action = TradeAction.ENTER_SHORT
            timing = TradeTiming.WITHIN_15MIN
            size = PositionSize.SMALL
        elif signal_count >= 2 and risk_count <= 2:
            action = TradeAction.HOLD
            timing = TradeTiming.WITHIN_1HOUR

        if risk_count > 3:
            confidence = min(confidence, HIGH_RISK_CONFIDENCE_CAP)

        return TradingRecommendation(
            action=action,
            timing=timing,
            confidence=round(confidence, 10),
            position_size=size,
        )

    @staticmethod
    def minimal() -> TradingRecommendation:
        """Recommendation used when there is no data to act on."""
        return TradingRecommendation(
            action=TradeAction.WAIT,
            timing=TradeTiming.END_OF_DAY,
            confidence=MIN_CONFIDENCE,
            position_size=PositionSize.SMALL,
        )

    # ------------------------------------------------------------------
    # Reasoning
    # ------------------------------------------------------------------

    def explain(
        self,
        signals: VolumeSignals,
        trend: Trend,
        patterns: Sequence[Pattern],
        alerts: Sequence[WhaleAlert],
    ) -> list[str]:
        """Build the human-readable reasoning lines."""
        reasoning: list[str] = []

        if signals.whale_activity:
            reasoning.append(f"Whale activity detected: {len(alerts)} recent alerts")

        if signals.pattern_recognition:
            strong = [
                p.pattern_type.value
                for p in patterns
                if p.strength > STRONG_PATTERN_STRENGTH
            ]
            reasoning.append(f"Strong patterns identified: {', '.join(strong)}")

        if signals.time_based_trends:
            reasoning.append("Time-based volume trends support prediction")

        if signals.volume_accumulation:
            reasoning.append("Volume accumulation pattern detected")

        reasoning.append(f"Overall trend assessment: {trend.value}")
        return reasoning
