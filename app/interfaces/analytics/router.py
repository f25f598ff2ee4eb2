"""
FastAPI router for the analytics bounded context.

All routes delegate to use cases. No business logic here.
Path parameters are validated by FastAPI; domain errors are mapped by
the centralized error handlers.
"""

from fastapi import APIRouter, Depends, Path, status

from app.application.analytics.analyze_market_regime import AnalyzeMarketRegimeUseCase
from app.application.analytics.clear_cache import ClearCacheUseCase
from app.application.analytics.confirm_pattern import ConfirmPatternUseCase
from app.application.analytics.dtos import PoolQuery
from app.application.analytics.get_stats import GetStatsUseCase
from app.application.analytics.identify_patterns import IdentifyPatternsUseCase
from app.application.analytics.predict_volume import PredictVolumeUseCase
from app.domain.analytics.entities import WhaleAlert, utcnow
from app.infrastructure.analytics.whale_alert_feed import WhaleAlertFeed
from app.interfaces.analytics.dependencies import (
    get_analyze_market_regime_use_case,
    get_clear_cache_use_case,
    get_confirm_pattern_use_case,
    get_identify_patterns_use_case,
    get_predict_volume_use_case,
    get_stats_use_case,
    get_whale_feed,
)
from app.interfaces.analytics.schemas import (
    POOL_ID_DESCRIPTION,
    POOL_ID_PATTERN,
    ErrorResponse,
    MarketRegimeResponse,
    PatternItem,
    PatternsResponse,
    StatsResponse,
    VolumePredictionResponse,
    WhaleAlertAccepted,
    WhaleAlertRequest,
)

router = APIRouter(prefix="/analytics", tags=["analytics"])

PoolIdPath = Path(..., pattern=POOL_ID_PATTERN, description=POOL_ID_DESCRIPTION)

_POOL_ERRORS = {
    422: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


@router.get(
    "/pools/{pool_id}/prediction",
    response_model=VolumePredictionResponse,
    responses=_POOL_ERRORS,
    summary="Predict pool volume",
    description="Forecast volume for the next 15 minutes, 30 minutes, 1 hour and 4 hours.",
)
async def predict_volume(
    pool_id: str = PoolIdPath,
    use_case: PredictVolumeUseCase = Depends(get_predict_volume_use_case),
) -> VolumePredictionResponse:
    prediction = await use_case.execute(PoolQuery(pool_id=pool_id))
    return VolumePredictionResponse.from_domain(prediction)


@router.get(
    "/pools/{pool_id}/patterns",
    response_model=PatternsResponse,
    responses=_POOL_ERRORS,
    summary="Identify volume patterns",
)
async def identify_patterns(
    pool_id: str = PoolIdPath,
    use_case: IdentifyPatternsUseCase = Depends(get_identify_patterns_use_case),
) -> PatternsResponse:
    patterns = await use_case.execute(PoolQuery(pool_id=pool_id))
    return PatternsResponse(
        pool_id=pool_id,
        patterns=[PatternItem.from_domain(p) for p in patterns],
    )


@router.get(
    "/pools/{pool_id}/regime",
    response_model=MarketRegimeResponse,
    responses=_POOL_ERRORS,
    summary="Classify market regime",
)
async def analyze_market_regime(
    pool_id: str = PoolIdPath,
    use_case: AnalyzeMarketRegimeUseCase = Depends(get_analyze_market_regime_use_case),
) -> MarketRegimeResponse:
    regime = await use_case.execute(PoolQuery(pool_id=pool_id))
    return MarketRegimeResponse.from_domain(pool_id, regime)


@router.post(
    "/patterns/{pattern_id}/confirm",
    response_model=PatternItem,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Confirm a stored pattern",
)
def confirm_pattern(
    pattern_id: int = Path(..., ge=1),
    use_case: ConfirmPatternUseCase = Depends(get_confirm_pattern_use_case),
) -> PatternItem:
    return PatternItem.from_domain(use_case.execute(pattern_id))


@router.post(
    "/whale-alerts",
    response_model=WhaleAlertAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Publish a whale alert",
)
async def publish_whale_alert(
    request: WhaleAlertRequest,
    feed: WhaleAlertFeed = Depends(get_whale_feed),
) -> WhaleAlertAccepted:
    feed.publish(
        WhaleAlert(
            whale_address=request.whale_address,
            alert_type=request.alert_type,
            pool_id=request.pool_id,
            token0=request.token0,
            token1=request.token1,
            volume=request.volume,
            confidence=request.confidence,
            urgency=request.urgency,
            timestamp=request.timestamp or utcnow(),
        )
    )
    return WhaleAlertAccepted(accepted=True, alerts_held=len(feed))


@router.get(
    "/stats",
    response_model=StatsResponse,
    summary="Analytics engine statistics",
)
async def get_stats(
    use_case: GetStatsUseCase = Depends(get_stats_use_case),
) -> StatsResponse:
    stats = use_case.execute()
    return StatsResponse(
        cached_predictions=stats.cached_predictions,
        patterns_learned=stats.patterns_learned,
        pools_tracked=stats.pools_tracked,
        cache=stats.cache,
    )


@router.delete(
    "/cache",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Clear analytics caches",
)
async def clear_cache(
    use_case: ClearCacheUseCase = Depends(get_clear_cache_use_case),
) -> None:
    use_case.execute()
