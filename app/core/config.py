"""
Application configuration.

Loads settings from environment variables and .env file.
All configuration is centralized here; no scattered magic strings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment.

    Attributes:
        project_name: Display name for the API.
        version: Current API version string.
        debug: Enable debug mode. Must be False in production.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        rate_limit_default: Default rate limit for all endpoints.
        rate_limit_enabled: Toggle rate limiting (disabled in tests).
        database_url: SQLAlchemy URL for the pattern store and durable cache.
        history_api_base_url: Root URL of the transaction explorer API.
        history_api_timeout_seconds: HTTP timeout for explorer requests.
        cache_ttl_minutes: Freshness window of cached history responses.
        cache_max_entries: Capacity of the volatile history cache.
        prediction_cache_ttl_minutes: Freshness window of cached predictions.
        pattern_memory_hours: History window used for pattern detection.
        whale_alert_window_hours: Look-back window for whale alerts.
        pattern_validation_interval_minutes: How often elapsed patterns are closed.
        cache_sweep_interval_minutes: How often stale cache entries are swept.
        scheduler_tick_seconds: Interval between maintenance ticks.
        enable_scheduler: Start the maintenance scheduler with the app.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    project_name: str = "Poolcast"
    version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    rate_limit_default: str = "60/minute"
    rate_limit_enabled: bool = True

    database_url: str = "sqlite:///./poolcast.db"

    history_api_base_url: str = "https://dex-backend-prod1.defi.gala.com"
    history_api_timeout_seconds: float = 10.0

    cache_ttl_minutes: float = 5.0
    cache_max_entries: int = 200
    prediction_cache_ttl_minutes: float = 5.0
    pattern_memory_hours: float = 168.0
    whale_alert_window_hours: float = 4.0

    pattern_validation_interval_minutes: float = 60.0
    cache_sweep_interval_minutes: float = 10.0
    scheduler_tick_seconds: float = 60.0
    enable_scheduler: bool = True


settings = Settings()
