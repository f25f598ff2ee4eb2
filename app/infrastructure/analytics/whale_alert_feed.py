"""
Adapter: In-process whale alert feed.

Implements WhaleAlertSource port.
Whale trackers publish alerts here; the predictor reads back the ones
raised within a recent window. Holds a bounded, append-only list.
"""

import logging
from collections import deque
from datetime import datetime, timedelta
from typing import Callable

from app.domain.analytics.entities import WhaleAlert, utcnow
from app.domain.analytics.ports import WhaleAlertSource

logger = logging.getLogger(__name__)


class WhaleAlertFeed(WhaleAlertSource):
    """Bounded in-memory whale alert source."""

    def __init__(
        self, max_alerts: int = 1000, clock: Callable[[], datetime] = utcnow
    ) -> None:
        self._alerts: deque[WhaleAlert] = deque(maxlen=max_alerts)
        self._clock = clock

    def __len__(self) -> int:
        return len(self._alerts)

    def publish(self, alert: WhaleAlert) -> None:
        self._alerts.append(alert)
        logger.debug(
            "Whale alert %s on pool %s (%s)",
            alert.alert_type,
            alert.pool_id[:8],
            alert.urgency.value,
        )

    async def get_recent_alerts(self, window_hours: float) -> list[WhaleAlert]:
        cutoff = self._clock() - timedelta(hours=window_hours)
        return [alert for alert in self._alerts if alert.timestamp >= cutoff]
