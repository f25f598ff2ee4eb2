"""
Centralized error handlers for FastAPI.

Maps analytics domain errors to HTTP responses.
No stack traces or internal details are exposed to clients.
All error responses use the ErrorResponse schema.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.domain.analytics.errors import (
    AnalyticsDomainError,
    HistoryNetworkError,
    HistoryValidationError,
    InvalidPoolIdError,
    PatternLifecycleError,
    PatternNotFoundError,
    PersistenceError,
)

logger = logging.getLogger(__name__)

HTTP_404 = 404
HTTP_409 = 409
HTTP_422 = 422
HTTP_500 = 500
HTTP_503 = 503


def _error_response(status_code: int, error: str, detail: str | None = None) -> JSONResponse:
    """Build a consistent JSON error response."""
    body: dict[str, str | None] = {"error": error}
    if detail:
        body["detail"] = detail
    return JSONResponse(status_code=status_code, content=body)


def register_error_handlers(app: FastAPI) -> None:
    """Register all domain error handlers on the FastAPI application.

    Args:
        app: The FastAPI application instance.
    """

    @app.exception_handler(InvalidPoolIdError)
    async def handle_invalid_pool(
        _request: Request, exc: InvalidPoolIdError
    ) -> JSONResponse:
        logger.warning("Invalid pool id: %s", exc.pool_id[:16])
        return _error_response(
            HTTP_422, "Invalid pool id", "Pool id must be a 64-character hex string"
        )

    @app.exception_handler(HistoryValidationError)
    async def handle_history_validation(
        _request: Request, exc: HistoryValidationError
    ) -> JSONResponse:
        """Handle rejected requests and malformed upstream payloads."""
        logger.warning("History validation error: %s", exc.reason)
        return _error_response(HTTP_422, "Transaction history request rejected")

    @app.exception_handler(HistoryNetworkError)
    async def handle_history_network(
        _request: Request, exc: HistoryNetworkError
    ) -> JSONResponse:
        """Handle upstream outages and timeouts."""
        logger.error(
            "History network error (status=%s, timeout=%s): %s",
            exc.status_code,
            exc.timeout,
            exc.reason,
        )
        detail = "Upstream request timed out" if exc.timeout else None
        return _error_response(HTTP_503, "Transaction history unavailable", detail)

    @app.exception_handler(PatternNotFoundError)
    async def handle_pattern_not_found(
        _request: Request, exc: PatternNotFoundError
    ) -> JSONResponse:
        logger.warning("Pattern not found: %d", exc.pattern_id)
        return _error_response(HTTP_404, "Pattern not found")

    @app.exception_handler(PatternLifecycleError)
    async def handle_pattern_lifecycle(
        _request: Request, exc: PatternLifecycleError
    ) -> JSONResponse:
        logger.warning("Illegal pattern transition: %s -> %s", exc.current, exc.target)
        return _error_response(HTTP_409, "Pattern is already closed")

    @app.exception_handler(PersistenceError)
    async def handle_persistence(
        _request: Request, exc: PersistenceError
    ) -> JSONResponse:
        logger.error("Persistence failure in %s: %s", exc.operation, exc.reason)
        return _error_response(HTTP_500, "Internal server error")

    @app.exception_handler(AnalyticsDomainError)
    async def handle_analytics_domain(
        _request: Request, exc: AnalyticsDomainError
    ) -> JSONResponse:
        """Catch-all for unhandled analytics domain errors."""
        logger.error("Unhandled analytics domain error: %s", exc.message)
        return _error_response(HTTP_500, "Internal server error")

    @app.exception_handler(Exception)
    async def handle_unexpected(
        _request: Request, exc: Exception
    ) -> JSONResponse:
        """Catch-all for unexpected errors. Never exposes internals."""
        logger.exception("Unexpected error: %s", type(exc).__name__)
        return _error_response(HTTP_500, "Internal server error")
