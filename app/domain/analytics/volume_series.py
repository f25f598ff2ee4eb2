"""
Volume series construction and statistics.

Turns a slice of TransactionRecords into bucketed volume series and
computes the shared statistics every detector relies on:
- Hourly / quarter-hourly buckets (sparse, most recent first)
- Least-squares linear trend
- Coefficient of variation
- Trend strength (|slope| relative to the mean)

Series are always ordered most recent first. Statistics guard their
degenerate cases with explicit fallbacks instead of producing NaN.
"""

from collections import defaultdict
from datetime import datetime, timezone
from statistics import fmean, pstdev
from typing import Callable, Sequence

from app.domain.analytics.entities import TransactionRecord

# Below this many points a slope is too noisy to be meaningful.
MIN_TREND_POINTS = 3


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def hour_slot(moment: datetime) -> datetime:
    return _as_utc(moment).replace(minute=0, second=0, microsecond=0)


def quarter_hour_slot(moment: datetime) -> datetime:
    moment = _as_utc(moment)
    return moment.replace(minute=moment.minute // 15 * 15, second=0, microsecond=0)


def bucket_volumes(
    transactions: Sequence[TransactionRecord],
    slot: Callable[[datetime], datetime] = hour_slot,
) -> list[float]:
    """Sum transaction volume into time buckets.

    Only buckets that contain at least one transaction are returned;
    empty slots are not zero-filled.

    Args:
        transactions: Transactions in any order.
        slot: Maps a timestamp to the start of its bucket.

    Returns:
        Bucket volumes, most recent bucket first.
    """
    totals: dict[datetime, float] = defaultdict(float)
    for tx in transactions:
        totals[slot(tx.transaction_time)] += tx.volume
    return [totals[key] for key in sorted(totals, reverse=True)]


def group_by_hour(transactions: Sequence[TransactionRecord]) -> list[float]:
    return bucket_volumes(transactions, hour_slot)


def group_by_quarter_hour(transactions: Sequence[TransactionRecord]) -> list[float]:
    return bucket_volumes(transactions, quarter_hour_slot)


def hour_of_day_totals(transactions: Sequence[TransactionRecord]) -> list[float]:
    """Total volume per UTC hour-of-day (0-23) that has any activity."""
    totals: dict[int, float] = defaultdict(float)
    for tx in transactions:
        totals[_as_utc(tx.transaction_time).hour] += tx.volume
    return [totals[hour] for hour in sorted(totals)]


def mean(volumes: Sequence[float]) -> float:
    if not volumes:
        return 0.0
    return fmean(volumes)


def linear_trend(volumes: Sequence[float]) -> float:
    """Least-squares slope of a most-recent-first series.

    The series is reversed so that the most recent bucket has the largest
    x; a positive slope therefore means volume is rising toward the present.

    Returns:
        Slope per bucket, or 0.0 for fewer than three points.
    """
    n = len(volumes)
    if n < MIN_TREND_POINTS:
        return 0.0

    ys = list(volumes)[::-1]
    xs = range(n)
    sum_x = sum(xs)
    sum_y = sum(ys)
    sum_xy = sum(x * y for x, y in zip(xs, ys))
    sum_xx = sum(x * x for x in xs)

    denominator = n * sum_xx - sum_x * sum_x
    if denominator == 0:
        return 0.0
    return (n * sum_xy - sum_x * sum_y) / denominator


def variability(volumes: Sequence[float]) -> float:
    """Coefficient of variation (population stdev / mean).

    Returns 0.0 for fewer than two points or a non-positive mean.
    """
    if len(volumes) < 2:
        return 0.0
    average = fmean(volumes)
    if average <= 0:
        return 0.0
    return pstdev(volumes, average) / average


def trend_strength(volumes: Sequence[float]) -> float:
    """|slope| relative to the average bucket volume (floored at 1)."""
    if len(volumes) < MIN_TREND_POINTS:
        return 0.0
    return abs(linear_trend(volumes)) / max(mean(volumes), 1.0)
