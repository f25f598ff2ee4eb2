"""Builders for analytics test data."""

from datetime import datetime, timedelta, timezone

from app.domain.analytics.entities import (
    AlertUrgency,
    Pattern,
    PatternType,
    TransactionRecord,
    WhaleAlert,
)
from app.domain.analytics.ports import HistoryIngestor

POOL_ID = "a" * 64
OTHER_POOL_ID = "b" * 64
NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime = NOW) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


def make_tx(
    minutes_ago: float,
    volume: float,
    now: datetime = NOW,
    pool_id: str = POOL_ID,
    user_id: str = "eth|abc",
) -> TransactionRecord:
    return TransactionRecord(
        transaction_time=now - timedelta(minutes=minutes_ago),
        pool_id=pool_id,
        token0="GALA",
        token1="GUSDC",
        amount0=volume,
        amount1=-volume,
        volume=volume,
        user_id=user_id,
    )


def hourly_txs(
    volumes: list[float], now: datetime = NOW, per_hour: int = 1
) -> list[TransactionRecord]:
    """One bucket per hour (most recent first), split into ``per_hour`` swaps."""
    txs = []
    for hour, volume in enumerate(volumes):
        for i in range(per_hour):
            txs.append(make_tx(hour * 60 + 1 + i, volume / per_hour, now=now))
    return txs


def make_pattern(
    pattern_type: PatternType = PatternType.ACCUMULATION,
    strength: float = 0.8,
    success: float = 0.65,
    time_to_target: float = 120,
    detected_at: datetime = NOW,
    **kwargs,
) -> Pattern:
    return Pattern(
        pattern_type=pattern_type,
        strength=strength,
        historical_success_rate=success,
        duration_minutes=360,
        time_to_target_minutes=time_to_target,
        volume_target=150.0,
        detected_at=detected_at,
        **kwargs,
    )


def make_alert(
    volume: float = 1000.0,
    pool_id: str = POOL_ID,
    urgency: AlertUrgency = AlertUrgency.MEDIUM,
    confidence: float = 0.8,
    timestamp: datetime = NOW,
) -> WhaleAlert:
    return WhaleAlert(
        whale_address="eth|whale",
        alert_type="large_buy",
        pool_id=pool_id,
        token0="GALA",
        token1="GUSDC",
        volume=volume,
        confidence=confidence,
        urgency=urgency,
        timestamp=timestamp,
    )


class FakeHistory(HistoryIngestor):
    """In-memory history ingestor that records every call."""

    def __init__(self, transactions=(), error: Exception | None = None) -> None:
        self.transactions = list(transactions)
        self.error = error
        self.calls: list[dict] = []

    async def fetch_transactions(self, pool_id, from_time=None, to_time=None, limit=1000):
        self.calls.append(
            {"pool_id": pool_id, "from_time": from_time, "to_time": to_time, "limit": limit}
        )
        if self.error is not None:
            raise self.error
        records = [
            tx
            for tx in self.transactions
            if (from_time is None or tx.transaction_time >= from_time)
            and (to_time is None or tx.transaction_time <= to_time)
        ]
        records.sort(key=lambda tx: tx.transaction_time, reverse=True)
        return records[:limit]
