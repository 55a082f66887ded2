"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Provider Credentials - Optional (a provider without credentials is skipped)
    youtube_api_key: str | None = Field(None, description="YouTube Data API v3 key")
    soundcloud_client_id: str | None = Field(None, description="SoundCloud API client ID")

    # Cache Store Configuration
    redis_url: str | None = Field(
        None, description="Redis URL for the shared cache store (unset: in-process store)"
    )
    memory_cache_maxsize: int = Field(
        default=10000, description="Maximum entries in the in-process cache store"
    )

    # Local Catalog Configuration
    catalog_db_path: Path = Field(
        default=Path("catalog.db"), description="Path to SQLite track catalog"
    )

    @property
    def resolved_catalog_db_path(self) -> Path:
        """Get the catalog database path, handling empty env var case."""
        if not str(self.catalog_db_path) or str(self.catalog_db_path) == ".":
            return Path("catalog.db")
        return self.catalog_db_path

    # Application Configuration
    host: str = Field(default="0.0.0.0", description="Host to bind the server to")
    port: int = Field(default=8000, description="Port to run the server on")
    log_level: str = Field(default="INFO", description="Logging level")

    # Search Configuration
    search_cache_ttl: int = Field(
        default=86400, description="TTL in seconds for cached search responses (default: 24 hours)"
    )
    search_default_results: int = Field(
        default=20, description="Result count used when max_results is absent or non-positive"
    )
    search_max_results: int = Field(default=50, description="Upper bound for max_results")
    aggregator_timeout: float = Field(
        default=10.0, description="Shared deadline in seconds for one fan-out search"
    )
    aggregator_min_per_source: int = Field(
        default=5, description="Minimum per-source result budget during fan-out"
    )

    # Inbound Rate Limiting Configuration
    rate_limit_enabled: bool = Field(default=True, description="Enable per-client rate limiting")
    rate_limit_max_requests: int = Field(
        default=100, description="Max requests per client per window"
    )
    rate_limit_window: int = Field(default=60, description="Rate limit window in seconds")

    # Provider (outbound) Rate Limiting Configuration
    provider_rate_limit: int = Field(
        default=100, description="Max provider API requests per minute, per provider"
    )
    provider_max_concurrent: int = Field(
        default=5, description="Max concurrent provider API requests, per provider"
    )
    provider_max_retries: int = Field(
        default=2, description="Max retry attempts on 429 rate limit errors"
    )
    provider_timeout: float = Field(default=10.0, description="Provider HTTP timeout in seconds")

    # Indexer Configuration
    indexer_interval_hours: float = Field(default=24, description="Hours between indexing passes")
    indexer_sources_path: Path = Field(
        default=Path("config/ext_sources.yaml"),
        description="YAML file mapping source names to URL lists",
    )
    indexer_max_jitter: float = Field(
        default=2.0, description="Max random delay in seconds before a scheduled pass"
    )
    indexed_track_ttl: int = Field(
        default=86400, description="TTL in seconds for scraped metadata (default: 24 hours)"
    )
    indexed_list_cap: int = Field(
        default=1000, description="Maximum entries in each per-source index list"
    )
    scraper_timeout: float = Field(default=30.0, description="Page fetch timeout in seconds")

    # Feature Flags
    enable_telemetry: bool = Field(default=True, description="Enable PostHog telemetry")

    # PostHog Configuration
    posthog_api_key: str | None = Field(None, description="PostHog API key for telemetry")
    posthog_host: str = Field(default="https://us.i.posthog.com", description="PostHog host URL")

    # Sentry Configuration
    sentry_dsn: str | None = Field(None, description="Sentry DSN for error tracking")

    # Admin Configuration
    admin_token: str | None = Field(None, description="Bearer token for admin endpoints")

    # Application Metadata
    app_name: str = Field(default="Auxstream-Search", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
