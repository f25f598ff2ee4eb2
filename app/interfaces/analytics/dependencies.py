"""
Dependency injection for the analytics bounded context.

Provides FastAPI dependency functions that wire infrastructure
adapters into use cases via constructor injection.
These are the composition root for the analytics context.

The analytics engine is stateful (caches, pattern history, whale feed),
so its object graph is built once per process and shared by every
request.
"""

from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache

from sqlalchemy import Engine, create_engine

from app.application.analytics.analyze_market_regime import AnalyzeMarketRegimeUseCase
from app.application.analytics.clear_cache import ClearCacheUseCase
from app.application.analytics.confirm_pattern import ConfirmPatternUseCase
from app.application.analytics.get_stats import GetStatsUseCase
from app.application.analytics.identify_patterns import IdentifyPatternsUseCase
from app.application.analytics.maintenance import (
    MaintenanceScheduler,
    build_maintenance_jobs,
)
from app.application.analytics.memory import AnalyticsMemory
from app.application.analytics.predict_volume import PredictVolumeUseCase
from app.core.config import Settings, settings
from app.infrastructure.analytics.pattern_repository import PatternRepository
from app.infrastructure.analytics.transaction_history_client import (
    TransactionHistoryClient,
)
from app.infrastructure.analytics.whale_alert_feed import WhaleAlertFeed
from app.infrastructure.cache.durable_cache_repository import DurableCacheRepository
from app.infrastructure.cache.tiered_cache import TieredCache


def build_engine(database_url: str) -> Engine:
    """Build a SQLAlchemy engine from a database URL."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        # Pattern writes run in worker threads.
        connect_args["check_same_thread"] = False
    return create_engine(database_url, pool_pre_ping=True, connect_args=connect_args)


@dataclass
class AnalyticsContainer:
    """Process-wide analytics object graph."""

    engine: Engine
    durable_cache: DurableCacheRepository
    pattern_store: PatternRepository
    history_cache: TieredCache
    memory: AnalyticsMemory
    whale_feed: WhaleAlertFeed
    history: TransactionHistoryClient
    identify_patterns: IdentifyPatternsUseCase
    predict_volume: PredictVolumeUseCase
    analyze_market_regime: AnalyzeMarketRegimeUseCase
    confirm_pattern: ConfirmPatternUseCase
    get_stats: GetStatsUseCase
    clear_cache: ClearCacheUseCase
    maintenance: MaintenanceScheduler

    def ensure_tables(self) -> None:
        self.durable_cache.ensure_tables()
        self.pattern_store.ensure_tables()


def build_container(config: Settings) -> AnalyticsContainer:
    """Wire every analytics adapter and use case from settings."""
    engine = build_engine(config.database_url)
    durable_cache = DurableCacheRepository(engine)
    pattern_store = PatternRepository(engine)

    history_cache = TieredCache(
        durable=durable_cache,
        ttl=timedelta(minutes=config.cache_ttl_minutes),
        max_entries=config.cache_max_entries,
    )
    memory = AnalyticsMemory(
        prediction_ttl=timedelta(minutes=config.prediction_cache_ttl_minutes),
        pattern_memory=timedelta(hours=config.pattern_memory_hours),
    )
    whale_feed = WhaleAlertFeed()
    history = TransactionHistoryClient(
        base_url=config.history_api_base_url,
        cache=history_cache,
        timeout=config.history_api_timeout_seconds,
    )

    identify_patterns = IdentifyPatternsUseCase(
        history=history, memory=memory, pattern_store=pattern_store
    )
    predict_volume = PredictVolumeUseCase(
        history=history,
        whale_source=whale_feed,
        identify_patterns=identify_patterns,
        memory=memory,
        whale_window_hours=config.whale_alert_window_hours,
    )
    maintenance = MaintenanceScheduler(
        build_maintenance_jobs(
            identify_patterns,
            memory,
            history_cache,
            pattern_validation_interval=timedelta(
                minutes=config.pattern_validation_interval_minutes
            ),
            cache_sweep_interval=timedelta(minutes=config.cache_sweep_interval_minutes),
        )
    )

    return AnalyticsContainer(
        engine=engine,
        durable_cache=durable_cache,
        pattern_store=pattern_store,
        history_cache=history_cache,
        memory=memory,
        whale_feed=whale_feed,
        history=history,
        identify_patterns=identify_patterns,
        predict_volume=predict_volume,
        analyze_market_regime=AnalyzeMarketRegimeUseCase(history=history),
        confirm_pattern=ConfirmPatternUseCase(pattern_store),
        get_stats=GetStatsUseCase(memory, history_cache),
        clear_cache=ClearCacheUseCase(memory, history_cache),
        maintenance=maintenance,
    )


@lru_cache(maxsize=1)
def get_container() -> AnalyticsContainer:
    """Return the process-wide analytics container."""
    return build_container(settings)


def get_predict_volume_use_case() -> PredictVolumeUseCase:
    return get_container().predict_volume


def get_identify_patterns_use_case() -> IdentifyPatternsUseCase:
    return get_container().identify_patterns


def get_analyze_market_regime_use_case() -> AnalyzeMarketRegimeUseCase:
    return get_container().analyze_market_regime


def get_confirm_pattern_use_case() -> ConfirmPatternUseCase:
    return get_container().confirm_pattern


def get_stats_use_case() -> GetStatsUseCase:
    return get_container().get_stats


def get_clear_cache_use_case() -> ClearCacheUseCase:
    return get_container().clear_cache


def get_whale_feed() -> WhaleAlertFeed:
    return get_container().whale_feed
