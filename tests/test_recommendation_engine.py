"""
Tests for RecommendationEngine.

Covers the decision table, the confidence clamp and the risk cap,
plus signal and risk identification.
"""

import pytest

from app.domain.analytics.entities import (
    HorizonForecast,
    PositionSize,
    TradeAction,
    TradeTiming,
    Trend,
    VolumeSignals,
)
from app.domain.analytics.recommendation_engine import RecommendationEngine
from factories import hourly_txs, make_alert, make_pattern, make_tx

ALL_SIGNALS = VolumeSignals(True, True, True, True)
THREE_SIGNALS = VolumeSignals(True, True, True, False)
TWO_SIGNALS = VolumeSignals(True, True, False, False)


def _risks(n: int) -> list[str]:
    return [f"risk {i}" for i in range(n)]


class TestRecommend:
    """Decision table."""

    def test_no_signals_waits(self) -> None:
        rec = RecommendationEngine().recommend(Trend.NEUTRAL, VolumeSignals(), _risks(4))
        assert rec.action is TradeAction.WAIT
        assert rec.timing is TradeTiming.END_OF_DAY
        assert rec.position_size is PositionSize.SMALL
        assert rec.confidence == pytest.approx(0.1)

    def test_spike_with_strong_signals_enters_large(self) -> None:
        rec = RecommendationEngine().recommend(Trend.SPIKE_EXPECTED, THREE_SIGNALS, _risks(1))
        assert rec.action is TradeAction.ENTER_LONG
        assert rec.timing is TradeTiming.IMMEDIATE
        assert rec.position_size is PositionSize.LARGE
        assert rec.confidence == pytest.approx(0.9)

    def test_spike_with_more_risk_enters_medium(self) -> None:
        rec = RecommendationEngine().recommend(Trend.SPIKE_EXPECTED, THREE_SIGNALS, _risks(2))
        assert rec.position_size is PositionSize.MEDIUM

    def test_spike_needs_three_signals(self) -> None:
        rec = RecommendationEngine().recommend(Trend.SPIKE_EXPECTED, TWO_SIGNALS, _risks(0))
        assert rec.action is TradeAction.HOLD

    def test_bullish_enters_within_15min(self) -> None:
        rec = RecommendationEngine().recommend(Trend.BULLISH, TWO_SIGNALS, _risks(0))
        assert rec.action is TradeAction.ENTER_LONG
        assert rec.timing is TradeTiming.WITHIN_15MIN
        assert rec.position_size is PositionSize.MEDIUM
        assert rec.confidence == pytest.approx(0.9)

    def test_bullish_with_three_risks_sizes_small(self) -> None:
        rec = RecommendationEngine().recommend(Trend.BULLISH, TWO_SIGNALS, _risks(3))
        assert rec.position_size is PositionSize.SMALL
        assert rec.confidence == pytest.approx(0.6)

    def test_expected_decline_shorts_small(self) -> None:
        rec = RecommendationEngine().recommend(Trend.DECLINE_EXPECTED, ALL_SIGNALS, _risks(0))
        assert rec.action is TradeAction.ENTER_SHORT
        assert rec.timing is TradeTiming.WITHIN_15MIN
        assert rec.position_size is PositionSize.SMALL

    def test_neutral_with_signals_holds(self) -> None:
        rec = RecommendationEngine().recommend(Trend.NEUTRAL, TWO_SIGNALS, _risks(2))
        assert rec.action is TradeAction.HOLD
        assert rec.timing is TradeTiming.WITHIN_1HOUR

    def test_neutral_with_three_risks_waits(self) -> None:
        rec = RecommendationEngine().recommend(Trend.BEARISH, TWO_SIGNALS, _risks(3))
        assert rec.action is TradeAction.WAIT

    def test_many_risks_cap_confidence(self) -> None:
        rec = RecommendationEngine().recommend(Trend.SPIKE_EXPECTED, ALL_SIGNALS, _risks(4))
        assert rec.action is TradeAction.ENTER_LONG
        assert rec.position_size is PositionSize.MEDIUM
        assert rec.confidence == pytest.approx(0.5)

    @pytest.mark.parametrize("trend", list(Trend))
    @pytest.mark.parametrize("risk_count", [0, 2, 6])
    def test_confidence_is_always_clamped(self, trend: Trend, risk_count: int) -> None:
        for signals in (VolumeSignals(), TWO_SIGNALS, ALL_SIGNALS):
            rec = RecommendationEngine().recommend(trend, signals, _risks(risk_count))
            assert 0.1 <= rec.confidence <= 0.9

    def test_minimal(self) -> None:
        rec = RecommendationEngine.minimal()
        assert rec.action is TradeAction.WAIT
        assert rec.timing is TradeTiming.END_OF_DAY
        assert rec.confidence == 0.1
        assert rec.position_size is PositionSize.SMALL


def _next_hour(volume: float) -> HorizonForecast:
    return HorizonForecast.from_lists([0.0, 0.0, volume, 0.0], [0.5] * 4)


class TestDetermineTrend:
    """Trend label from next-hour volume over the reference level."""

    def test_whale_backed_spike(self) -> None:
        signals = VolumeSignals(whale_activity=True)
        trend = RecommendationEngine().determine_trend(_next_hour(250.0), signals, 100.0, 50.0)
        assert trend is Trend.SPIKE_EXPECTED

    def test_spike_without_whales_is_bullish(self) -> None:
        trend = RecommendationEngine().determine_trend(
            _next_hour(250.0), VolumeSignals(), 100.0, 50.0
        )
        assert trend is Trend.BULLISH

    def test_reference_is_max_of_current_and_baseline(self) -> None:
        trend = RecommendationEngine().determine_trend(
            _next_hour(100.0), VolumeSignals(), 10.0, 100.0
        )
        assert trend is Trend.NEUTRAL

    @pytest.mark.parametrize(
        "volume, expected",
        [(70.0, Trend.BEARISH), (40.0, Trend.DECLINE_EXPECTED), (160.0, Trend.BULLISH)],
    )
    def test_ratio_bands(self, volume: float, expected: Trend) -> None:
        trend = RecommendationEngine().determine_trend(
            _next_hour(volume), VolumeSignals(), 100.0, 0.0
        )
        assert trend is expected


class TestSignalsAndRisks:
    """Signal flags, risk factors and reasoning."""

    def test_whale_and_strong_pattern_signals(self) -> None:
        signals = RecommendationEngine().identify_signals(
            [], [], [make_alert()], [make_pattern(strength=0.8)]
        )
        assert signals.whale_activity
        assert signals.pattern_recognition

    def test_pattern_strength_threshold_is_strict(self) -> None:
        signals = RecommendationEngine().identify_signals([], [], [], [make_pattern(strength=0.7)])
        assert not signals.pattern_recognition

    def test_volume_accumulation_needs_ten_rising_swaps(self) -> None:
        rising = [make_tx(i, 100.0 - i * 5) for i in range(10)]
        engine = RecommendationEngine()
        assert engine.identify_signals(rising, [], [], []).volume_accumulation
        assert not engine.identify_signals(rising[:9], [], [], []).volume_accumulation

    def test_time_based_trends_from_uneven_hours(self) -> None:
        engine = RecommendationEngine()
        assert engine.identify_signals([], hourly_txs([100.0, 1.0, 1.0]), [], []).time_based_trends
        assert not engine.identify_signals([], hourly_txs([5.0] * 3), [], []).time_based_trends

    def test_risks_without_data(self) -> None:
        risks = RecommendationEngine().identify_risk_factors([], [], VolumeSignals())
        assert risks == [
            "Limited recent transaction data",
            "No recognizable patterns found",
            "Low signal strength - prediction less reliable",
        ]

    def test_no_risks_with_steady_data_and_signals(self) -> None:
        recent = [make_tx(1 + i, 10.0) for i in range(12)]
        risks = RecommendationEngine().identify_risk_factors(
            recent, [make_pattern()], VolumeSignals(whale_activity=True)
        )
        assert risks == []

    def test_volatile_quarter_hours_are_a_risk(self) -> None:
        recent = [make_tx(1, 500.0)] + [make_tx(16 + 15 * i, 1.0) for i in range(10)]
        risks = RecommendationEngine().identify_risk_factors(
            recent, [make_pattern()], VolumeSignals(whale_activity=True)
        )
        assert risks == ["High volume volatility detected"]

    def test_explain(self) -> None:
        signals = VolumeSignals(whale_activity=True, pattern_recognition=True)
        patterns = [
            make_pattern(strength=0.9),
            make_pattern(strength=0.2),
        ]
        reasoning = RecommendationEngine().explain(
            signals, Trend.BULLISH, patterns, [make_alert(), make_alert()]
        )
        assert reasoning == [
            "Whale activity detected: 2 recent alerts",
            "Strong patterns identified: accumulation",
            "Overall trend assessment: bullish",
        ]

    def test_explain_always_states_trend(self) -> None:
        assert RecommendationEngine().explain(VolumeSignals(), Trend.NEUTRAL, [], []) == [
            "Overall trend assessment: neutral"
        ]
