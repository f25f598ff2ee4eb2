"""
Port interfaces (ABCs) for the volume analytics bounded context.

Ports define the contracts that the domain requires from the outside world.
Infrastructure adapters implement these interfaces.
The domain layer never depends on concrete implementations.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from app.domain.analytics.entities import (
    CacheEntry,
    Pattern,
    TransactionRecord,
    WhaleAlert,
)


class HistoryIngestor(ABC):
    """Port for retrieving historical swap transactions for a pool."""

    @abstractmethod
    async def fetch_transactions(
        self,
        pool_id: str,
        from_time: Optional[datetime] = None,
        to_time: Optional[datetime] = None,
        limit: int = 1000,
    ) -> list[TransactionRecord]:
        """Return transactions for a pool within a time window.

        Args:
            pool_id: 64-character pool hash.
            from_time: Inclusive lower bound, or None for no bound.
            to_time: Inclusive upper bound, or None for now.
            limit: Maximum number of records to return.

        Returns:
            Transactions ordered most recent first.

        Raises:
            HistoryValidationError: Invalid request or upstream payload.
            HistoryNetworkError: Transport failure or timeout.
        """
        raise NotImplementedError


class PatternStore(ABC):
    """Port for durable persistence of detected patterns."""

    @abstractmethod
    def get_active_patterns(self, pool_id: str, now: datetime) -> list[Pattern]:
        """Return detected/confirmed patterns whose window has not elapsed.

        Ordered by confidence descending, then detection time descending.
        """
        raise NotImplementedError

    @abstractmethod
    def store_pattern(self, pool_id: str, pattern: Pattern) -> Pattern:
        """Persist a newly detected pattern and return it with its ID."""
        raise NotImplementedError

    @abstractmethod
    def confirm_pattern(self, pattern_id: int, now: datetime) -> Optional[Pattern]:
        """Move an active pattern to ``confirmed``. Returns None if not found."""
        raise NotImplementedError

    @abstractmethod
    def expire_patterns(self, now: datetime) -> int:
        """Close every active pattern whose predicted window has elapsed.

        Confirmed patterns become ``completed``; unconfirmed ones become
        ``invalidated``.

        Returns:
            Number of patterns closed.
        """
        raise NotImplementedError


class WhaleAlertSource(ABC):
    """Port for reading recent whale alerts across all pools."""

    @abstractmethod
    async def get_recent_alerts(self, window_hours: float) -> list[WhaleAlert]:
        """Return alerts raised within the last ``window_hours``."""
        raise NotImplementedError


class DurableCacheStore(ABC):
    """Port for the durable tier of the two-tier cache."""

    @abstractmethod
    def load(self, key: str, now: datetime) -> Optional[CacheEntry]:
        """Return a non-expired entry and record the access, or None."""
        raise NotImplementedError

    @abstractmethod
    def save(self, entry: CacheEntry) -> None:
        """Insert or replace an entry."""
        raise NotImplementedError

    @abstractmethod
    def purge_expired(self, now: datetime) -> int:
        """Delete entries that expired before ``now``. Returns rows removed."""
        raise NotImplementedError
