"""
Tests for the forecasters and SignalFusion.

All functions are pure; expected values are computed by hand.
"""

import pytest

from app.domain.analytics.entities import (
    HORIZONS,
    AlertUrgency,
    Horizon,
    HorizonForecast,
    PatternType,
)
from app.domain.analytics.errors import ForecastSourceError
from app.domain.analytics.signal_fusion import (
    DEFAULT_WEIGHTS,
    ForecastSource,
    SignalFusion,
    SourceKind,
    pattern_forecast,
    technical_forecast,
    whale_forecast,
)
from factories import OTHER_POOL_ID, POOL_ID, hourly_txs, make_alert, make_pattern, make_tx


def _volumes(forecast: HorizonForecast) -> list[float]:
    return [forecast.volume(h) for h in HORIZONS]


def _confidence(forecast: HorizonForecast) -> list[float]:
    return [forecast.confidence_for(h) for h in HORIZONS]


class TestTechnicalForecast:
    """Trend projection from the latest bucket."""

    def test_projects_base_plus_trend(self) -> None:
        recent = [make_tx(1, 40.0)]
        historical = hourly_txs([30.0, 20.0, 10.0])
        forecast = technical_forecast(recent, historical)
        assert _volumes(forecast) == pytest.approx([12.5, 25.0, 50.0, 160.0])
        assert _confidence(forecast) == pytest.approx([0.75, 0.65, 0.55, 0.35])

    def test_falls_back_to_latest_hour_without_recent_data(self) -> None:
        forecast = technical_forecast([], hourly_txs([8.0, 8.0, 8.0]))
        assert forecast.volume(Horizon.NEXT_1HOUR) == pytest.approx(8.0)

    def test_steep_decline_is_floored_at_zero(self) -> None:
        forecast = technical_forecast([make_tx(1, 1.0)], hourly_txs([10.0, 60.0, 110.0]))
        assert _volumes(forecast) == [0.0, 0.0, 0.0, 0.0]

    def test_no_data(self) -> None:
        assert _volumes(technical_forecast([], [])) == [0.0, 0.0, 0.0, 0.0]


class TestPatternForecast:
    """Multiplier table keyed by the strongest pattern."""

    def test_without_patterns_decays_current_volume(self) -> None:
        forecast = pattern_forecast([], 100.0)
        assert _volumes(forecast) == pytest.approx([90.0, 80.0, 70.0, 50.0])
        assert _confidence(forecast) == pytest.approx([0.3, 0.2, 0.1, 0.05])

    def test_uses_strongest_pattern(self) -> None:
        patterns = [
            make_pattern(PatternType.CONSOLIDATION, strength=0.3, success=0.45),
            make_pattern(PatternType.BREAKOUT, strength=0.9, success=0.72),
        ]
        forecast = pattern_forecast(patterns, 100.0)
        assert _volumes(forecast) == pytest.approx([150.0, 180.0, 220.0, 150.0])
        assert _confidence(forecast) == pytest.approx(
            [0.72 * 0.8, 0.72 * 0.7, 0.72 * 0.6, 0.72 * 0.4]
        )

    def test_distribution_row(self) -> None:
        forecast = pattern_forecast([make_pattern(PatternType.DISTRIBUTION)], 10.0)
        assert _volumes(forecast) == pytest.approx([9.0, 8.0, 6.0, 4.0])


class TestWhaleForecast:
    """Follow-through volume from whale alerts."""

    def test_urgent_alert_boosts_total_volume(self) -> None:
        alerts = [
            make_alert(100.0),
            make_alert(200.0),
            make_alert(300.0, urgency=AlertUrgency.IMMEDIATE),
        ]
        forecast = whale_forecast(alerts, POOL_ID)
        assert forecast.volume(Horizon.NEXT_15MIN) == pytest.approx(600.0 * 1.5)
        assert _volumes(forecast) == pytest.approx([900.0, 720.0, 540.0, 270.0])
        assert _confidence(forecast) == pytest.approx([0.72, 0.64, 0.56, 0.4])

    def test_non_urgent_alerts_are_not_boosted(self) -> None:
        forecast = whale_forecast([make_alert(100.0, urgency=AlertUrgency.LOW)], POOL_ID)
        assert forecast.volume(Horizon.NEXT_15MIN) == pytest.approx(100.0)

    def test_other_pools_are_ignored(self) -> None:
        forecast = whale_forecast([make_alert(500.0, pool_id=OTHER_POOL_ID)], POOL_ID)
        assert forecast == HorizonForecast.zero()


def _flat(volume: float, confidence: float) -> HorizonForecast:
    return HorizonForecast.from_lists([volume] * 4, [confidence] * 4)


class TestSignalFusion:
    """Per-horizon weighted fusion."""

    def test_single_contributor_passes_through(self) -> None:
        sources = [
            ForecastSource.of(SourceKind.TECHNICAL, _flat(120.0, 0.6)),
            ForecastSource.of(SourceKind.PATTERN, HorizonForecast.zero()),
            ForecastSource.of(SourceKind.WHALE, HorizonForecast.zero()),
        ]
        fused = SignalFusion().fuse(sources)
        assert _volumes(fused) == pytest.approx([120.0] * 4)
        assert _confidence(fused) == pytest.approx([0.6] * 4)

    def test_fusing_identical_sources_is_idempotent(self) -> None:
        source = ForecastSource.of(SourceKind.TECHNICAL, _flat(80.0, 0.5))
        fused = SignalFusion().fuse([source, source])
        assert _volumes(fused) == pytest.approx([80.0] * 4)
        assert _confidence(fused) == pytest.approx([0.5] * 4)

    def test_weighted_by_weight_times_confidence(self) -> None:
        sources = [
            ForecastSource.of(SourceKind.TECHNICAL, _flat(100.0, 0.5)),
            ForecastSource.of(SourceKind.PATTERN, _flat(200.0, 0.5)),
        ]
        fused = SignalFusion().fuse(sources)
        assert fused.volume(Horizon.NEXT_1HOUR) == pytest.approx(55.0 / 0.375)
        assert fused.confidence_for(Horizon.NEXT_1HOUR) == pytest.approx(0.5)

    def test_zero_confidence_source_is_excluded(self) -> None:
        sources = [
            ForecastSource.of(SourceKind.TECHNICAL, _flat(100.0, 0.5)),
            ForecastSource.of(SourceKind.WHALE, _flat(10_000.0, 0.0)),
        ]
        fused = SignalFusion().fuse(sources)
        assert fused.volume(Horizon.NEXT_15MIN) == pytest.approx(100.0)

    def test_no_contributors_fuses_to_zero(self) -> None:
        fused = SignalFusion().fuse([ForecastSource.of(SourceKind.WHALE, HorizonForecast.zero())])
        assert fused == HorizonForecast.zero()

    def test_fused_values_stay_in_range(self) -> None:
        sources = [
            ForecastSource.of(SourceKind.TECHNICAL, _flat(1.0, 1.0)),
            ForecastSource.of(SourceKind.PATTERN, _flat(3.0, 0.9)),
            ForecastSource.of(SourceKind.WHALE, _flat(2.0, 0.2)),
        ]
        fused = SignalFusion().fuse(sources)
        for horizon in HORIZONS:
            assert 1.0 <= fused.volume(horizon) <= 3.0
            assert 0.0 <= fused.confidence_for(horizon) <= 1.0

    def test_default_weights(self) -> None:
        assert DEFAULT_WEIGHTS[SourceKind.TECHNICAL] == 0.4
        assert DEFAULT_WEIGHTS[SourceKind.PATTERN] == 0.35
        assert DEFAULT_WEIGHTS[SourceKind.WHALE] == 0.25


class TestFusionValidation:
    """Malformed sources are rejected."""

    def test_missing_horizon(self) -> None:
        partial = HorizonForecast(
            volumes={Horizon.NEXT_15MIN: 1.0}, confidence={Horizon.NEXT_15MIN: 0.5}
        )
        with pytest.raises(ForecastSourceError):
            SignalFusion().fuse([ForecastSource(SourceKind.TECHNICAL, partial, 0.4)])

    def test_unknown_kind(self) -> None:
        with pytest.raises(ForecastSourceError):
            SignalFusion().fuse([ForecastSource("sentiment", _flat(1.0, 1.0), 0.4)])

    def test_negative_weight(self) -> None:
        with pytest.raises(ForecastSourceError):
            SignalFusion().fuse([ForecastSource(SourceKind.WHALE, _flat(1.0, 1.0), -0.1)])
