"""
Use case: Predict short-horizon trading volume for a liquidity pool.

Input: PoolQuery (pool_id)
Output: VolumePrediction
Side effects: Caches successful predictions in the prediction cache.
Failure cases: InvalidPoolIdError, HistoryFetchError.

Flow:
    1. Serve a cached prediction if one is still fresh.
    2. Fetch recent + historical transactions, whale alerts and patterns
       concurrently; each result is inspected individually.
    3. Run the technical, pattern and whale forecasters (each guarded)
       and fuse whatever succeeded.
    4. Derive signals, risks, trend and the trading recommendation.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional, Sequence

from app.application.analytics.dtos import PoolQuery
from app.application.analytics.identify_patterns import IdentifyPatternsUseCase
from app.application.analytics.memory import AnalyticsMemory
from app.domain.analytics import volume_series
from app.domain.analytics.entities import (
    Horizon,
    HorizonForecast,
    Pattern,
    TransactionRecord,
    Trend,
    VolumePrediction,
    VolumeSignals,
    WhaleAlert,
    utcnow,
)
from app.domain.analytics.ports import HistoryIngestor, WhaleAlertSource
from app.domain.analytics.recommendation_engine import RecommendationEngine
from app.domain.analytics.signal_fusion import (
    ForecastSource,
    SignalFusion,
    SourceKind,
    pattern_forecast,
    technical_forecast,
    whale_forecast,
)

logger = logging.getLogger(__name__)

RECENT_WINDOW = timedelta(hours=4)
RECENT_LIMIT = 1000
HISTORICAL_WINDOW = timedelta(hours=72)
HISTORICAL_LIMIT = 2000
CURRENT_VOLUME_WINDOW = timedelta(hours=1)


class PredictVolumeUseCase:
    """Orchestrates multi-signal volume prediction for a pool.

    Failure of the primary history fetch propagates to the caller.
    Whale alerts and patterns are secondary: their failure degrades the
    prediction instead of aborting it.
    """

    def __init__(
        self,
        history: HistoryIngestor,
        whale_source: WhaleAlertSource,
        identify_patterns: IdentifyPatternsUseCase,
        memory: AnalyticsMemory,
        whale_window_hours: float = 4.0,
        fusion: Optional[SignalFusion] = None,
        engine: Optional[RecommendationEngine] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._history = history
        self._whales = whale_source
        self._identify_patterns = identify_patterns
        self._memory = memory
        self._whale_window_hours = whale_window_hours
        self._fusion = fusion or SignalFusion()
        self._engine = engine or RecommendationEngine()
        self._clock = clock

    async def execute(self, query: PoolQuery) -> VolumePrediction:
        """Run the volume prediction use case.

        Args:
            query: The request containing the pool hash.

        Returns:
            A full prediction, or a minimal one when the pool has no
            recent activity.
        """
        pool_id = query.pool_id
        now = self._clock()

        cached = self._memory.cached_prediction(pool_id, now)
        if cached is not None:
            logger.debug("Using cached prediction for pool %s", pool_id[:8])
            return cached

        logger.info("Predicting volume for pool %s", pool_id[:8])

        recent, historical, alerts, patterns = await asyncio.gather(
            self._history.fetch_transactions(
                pool_id, from_time=now - RECENT_WINDOW, to_time=now, limit=RECENT_LIMIT
            ),
            self._history.fetch_transactions(
                pool_id,
                from_time=now - HISTORICAL_WINDOW,
                to_time=now,
                limit=HISTORICAL_LIMIT,
            ),
            self._whales.get_recent_alerts(self._whale_window_hours),
            self._identify_patterns.execute(query),
            return_exceptions=True,
        )

        for result in (recent, historical):
            if isinstance(result, BaseException):
                logger.error("History fetch failed for pool %s: %s", pool_id[:8], result)
                raise result

        if isinstance(alerts, BaseException):
            logger.warning("Whale alerts unavailable: %s", alerts)
            alerts = []
        if isinstance(patterns, BaseException):
            logger.warning("Pattern identification failed for pool %s: %s", pool_id[:8], patterns)
            patterns = []

        if not recent:
            logger.warning("No recent transactions for pool %s", pool_id[:8])
            return self.minimal_prediction(pool_id, now)

        prediction = self._predict(pool_id, now, recent, historical, alerts, patterns)
        self._memory.remember_prediction(prediction, now)

        logger.info(
            "Volume prediction complete for %s: trend=%s next_1hour=%.0f confidence=%.1f%% signals=%d",
            pool_id[:8],
            prediction.trend.value,
            prediction.forecast.volume(Horizon.NEXT_1HOUR),
            prediction.forecast.confidence_for(Horizon.NEXT_1HOUR) * 100,
            prediction.signals.count,
        )
        return prediction

    def minimal_prediction(self, pool_id: str, now: datetime) -> VolumePrediction:
        """Prediction returned when there is nothing to predict from."""
        return VolumePrediction(
            pool_id=pool_id,
            token0="UNKNOWN",
            token1="UNKNOWN",
            current_volume=0.0,
            forecast=HorizonForecast.zero(),
            trend=Trend.NEUTRAL,
            signals=VolumeSignals(),
            reasoning=["Insufficient data for prediction"],
            risk_factors=["No recent transaction data"],
            recommendation=self._engine.minimal(),
            generated_at=now,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _predict(
        self,
        pool_id: str,
        now: datetime,
        recent: list[TransactionRecord],
        historical: list[TransactionRecord],
        alerts: list[WhaleAlert],
        patterns: list[Pattern],
    ) -> VolumePrediction:
        current_volume = sum(
            tx.volume
            for tx in recent
            if tx.transaction_time > now - CURRENT_VOLUME_WINDOW
        )
        baseline = volume_series.mean(volume_series.group_by_hour(historical))

        sources = self._forecast_sources(pool_id, recent, historical, patterns, alerts, current_volume)
        forecast = self._fusion.fuse(sources)

        signals = self._engine.identify_signals(recent, historical, alerts, patterns)
        trend = self._engine.determine_trend(forecast, signals, current_volume, baseline)
        risk_factors = self._engine.identify_risk_factors(recent, patterns, signals)

        return VolumePrediction(
            pool_id=pool_id,
            token0=recent[0].token0,
            token1=recent[0].token1,
            current_volume=current_volume,
            forecast=forecast,
            trend=trend,
            signals=signals,
            reasoning=self._engine.explain(signals, trend, patterns, alerts),
            risk_factors=risk_factors,
            recommendation=self._engine.recommend(trend, signals, risk_factors),
            generated_at=now,
        )

    @staticmethod
    def _forecast_sources(
        pool_id: str,
        recent: Sequence[TransactionRecord],
        historical: Sequence[TransactionRecord],
        patterns: Sequence[Pattern],
        alerts: Sequence[WhaleAlert],
        current_volume: float,
    ) -> list[ForecastSource]:
        forecasters = (
            (SourceKind.TECHNICAL, lambda: technical_forecast(recent, historical)),
            (SourceKind.PATTERN, lambda: pattern_forecast(patterns, current_volume)),
            (SourceKind.WHALE, lambda: whale_forecast(alerts, pool_id)),
        )
        sources: list[ForecastSource] = []
        for kind, forecaster in forecasters:
            try:
                sources.append(ForecastSource.of(kind, forecaster()))
            except (ArithmeticError, ValueError, KeyError) as exc:
                logger.warning("%s forecaster failed for pool %s: %s", kind.value, pool_id[:8], exc)
        return sources
