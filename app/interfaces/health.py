"""
Health check router.

Liveness reports the application version. Readiness additionally checks
that the analytics database answers a trivial query.
No business logic.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.interfaces.analytics.dependencies import AnalyticsContainer, get_container
from app.interfaces.analytics.schemas import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns application health status and version.",
)
def health_check() -> HealthResponse:
    """Return current application health status."""
    return HealthResponse(status="ok", version=settings.version)


@router.get(
    "/health/ready",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse}},
    summary="Readiness check",
)
def readiness_check(
    container: AnalyticsContainer = Depends(get_container),
) -> HealthResponse | JSONResponse:
    try:
        with container.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.warning("Readiness check failed: %s", type(exc).__name__)
        return JSONResponse(
            status_code=503,
            content={"status": "unavailable", "version": settings.version},
        )
    return HealthResponse(status="ok", version=settings.version)
