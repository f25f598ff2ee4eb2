"""
Use case: Classify the current market regime of a liquidity pool.

Input: PoolQuery (pool_id)
Output: MarketRegime
Side effects: None.
Failure cases: InvalidPoolIdError, HistoryFetchError.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from app.application.analytics.dtos import PoolQuery
from app.domain.analytics.entities import MarketRegime, utcnow
from app.domain.analytics.ports import HistoryIngestor
from app.domain.analytics.regime_classifier import REGIME_WINDOW_HOURS, RegimeClassifier

logger = logging.getLogger(__name__)

REGIME_LIMIT = 2000


class AnalyzeMarketRegimeUseCase:
    """Fetches the regime window and delegates to the RegimeClassifier."""

    def __init__(
        self,
        history: HistoryIngestor,
        classifier: Optional[RegimeClassifier] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._history = history
        self._classifier = classifier or RegimeClassifier()
        self._clock = clock

    async def execute(self, query: PoolQuery) -> MarketRegime:
        now = self._clock()
        transactions = await self._history.fetch_transactions(
            query.pool_id,
            from_time=now - timedelta(hours=REGIME_WINDOW_HOURS),
            to_time=now,
            limit=REGIME_LIMIT,
        )
        regime = self._classifier.classify(transactions)
        logger.info(
            "Market regime for pool %s: %s (%d transactions)",
            query.pool_id[:8],
            regime.regime.value,
            len(transactions),
        )
        return regime
