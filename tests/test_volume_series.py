"""
Tests for volume series bucketing and statistics.

Pure functions over TransactionRecords; no IO.
"""

from datetime import datetime, timedelta

import pytest

from app.domain.analytics import volume_series
from factories import NOW, make_tx


class TestBucketing:
    """Hourly and quarter-hourly bucketing."""

    def test_hourly_buckets_are_most_recent_first(self) -> None:
        txs = [make_tx(10, 7.0, now=NOW - timedelta(hours=1)), make_tx(1, 5.0), make_tx(30, 3.0)]
        assert volume_series.group_by_hour(txs) == [8.0, 7.0]

    def test_quarter_hour_buckets(self) -> None:
        txs = [make_tx(1, 5.0), make_tx(30, 3.0), make_tx(110, 7.0)]
        assert volume_series.group_by_quarter_hour(txs) == [5.0, 3.0, 7.0]

    def test_empty_slots_are_not_zero_filled(self) -> None:
        txs = [make_tx(1, 1.0), make_tx(5 * 60 + 1, 2.0)]
        assert volume_series.group_by_hour(txs) == [1.0, 2.0]

    def test_empty_input(self) -> None:
        assert volume_series.group_by_hour([]) == []

    def test_naive_timestamps_are_treated_as_utc(self) -> None:
        naive = datetime(2025, 3, 10, 11, 30)
        assert volume_series.hour_slot(naive) == volume_series.hour_slot(
            NOW - timedelta(minutes=30)
        )

    def test_hour_of_day_totals_fold_days_together(self) -> None:
        txs = [make_tx(1, 1.0), make_tx(24 * 60 + 1, 2.0), make_tx(61, 4.0)]
        # 11:xx on two days, 10:xx once; ordered by hour of day
        assert volume_series.hour_of_day_totals(txs) == [4.0, 3.0]


class TestStatistics:
    """Trend, variability and trend strength."""

    def test_slope_positive_when_rising_toward_present(self) -> None:
        assert volume_series.linear_trend([3.0, 2.0, 1.0]) == pytest.approx(1.0)

    def test_slope_negative_when_falling(self) -> None:
        assert volume_series.linear_trend([1.0, 2.0, 3.0]) == pytest.approx(-1.0)

    def test_slope_zero_below_three_points(self) -> None:
        assert volume_series.linear_trend([10.0, 1.0]) == 0.0

    def test_slope_zero_for_flat_series(self) -> None:
        assert volume_series.linear_trend([5.0] * 6) == 0.0

    def test_variability(self) -> None:
        assert volume_series.variability([2.0, 4.0]) == pytest.approx(1 / 3)

    @pytest.mark.parametrize("series", [[], [5.0], [0.0, 0.0]])
    def test_variability_degenerate_cases(self, series) -> None:
        assert volume_series.variability(series) == 0.0

    def test_trend_strength(self) -> None:
        assert volume_series.trend_strength([30.0, 20.0, 10.0]) == pytest.approx(0.5)

    def test_trend_strength_floors_mean_at_one(self) -> None:
        assert volume_series.trend_strength([0.3, 0.2, 0.1]) == pytest.approx(0.1)

    def test_mean_of_empty_series(self) -> None:
        assert volume_series.mean([]) == 0.0
