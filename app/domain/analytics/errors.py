"""
Domain-specific errors for the volume analytics bounded context.

All errors raised from the domain layer must be defined here.
These are mapped to HTTP responses at the interface layer.
No framework imports allowed.
"""

from typing import Optional


class AnalyticsDomainError(Exception):
    """Base error for all analytics domain errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class InvalidPoolIdError(AnalyticsDomainError):
    """Raised when a pool identifier is not a 64-character hex hash."""

    def __init__(self, pool_id: str) -> None:
        super().__init__(f"Invalid pool id: {pool_id!r}")
        self.pool_id = pool_id


class HistoryFetchError(AnalyticsDomainError):
    """Raised when transaction history cannot be retrieved upstream."""


class HistoryNetworkError(HistoryFetchError):
    """Raised on transport failures, timeouts and upstream 5xx responses."""

    def __init__(
        self, reason: str, status_code: Optional[int] = None, timeout: bool = False
    ) -> None:
        super().__init__(f"Network error: {reason}")
        self.reason = reason
        self.status_code = status_code
        self.timeout = timeout


class HistoryValidationError(HistoryFetchError):
    """Raised when a request or upstream payload fails validation."""

    def __init__(self, reason: str, status_code: Optional[int] = None) -> None:
        super().__init__(f"Validation error: {reason}")
        self.reason = reason
        self.status_code = status_code


class PatternLifecycleError(AnalyticsDomainError):
    """Raised on an illegal pattern status transition."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Cannot move pattern from {current} to {target}")
        self.current = current
        self.target = target


class ForecastSourceError(AnalyticsDomainError):
    """Raised when a forecast source handed to fusion is malformed."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Malformed forecast source: {reason}")
        self.reason = reason


class PersistenceError(AnalyticsDomainError):
    """Raised by durable adapters when a read or write fails."""

    def __init__(self, operation: str, reason: str) -> None:
        super().__init__(f"Persistence failure in {operation}: {reason}")
        self.operation = operation
        self.reason = reason


class PatternNotFoundError(AnalyticsDomainError):
    """Raised when a stored pattern does not exist."""

    def __init__(self, pattern_id: int) -> None:
        super().__init__(f"Pattern not found: {pattern_id}")
        self.pattern_id = pattern_id
