"""FastAPI dependency injection providers."""

import logging

from fastapi import Depends
from posthog import Posthog

from cache.store import CacheStore, create_cache_store
from catalog.db import TrackCatalog
from config.settings import Settings, get_settings
from core.exceptions import ServiceInitializationError
from indexer.registry import ScraperRegistry, create_default_registry
from indexer.service import IndexingService
from providers.base import ProviderClient
from providers.soundcloud import SoundCloudClient
from providers.youtube import YouTubeClient
from ratelimit.limiter import FixedWindowRateLimiter
from search.aggregator import Aggregator
from search.service import SearchService

logger = logging.getLogger(__name__)

# Module-level instances for lifecycle management
_cache_store: CacheStore | None = None
_catalog: TrackCatalog | None = None
_providers: list[ProviderClient] | None = None
_search_service: SearchService | None = None
_rate_limiter: FixedWindowRateLimiter | None = None
_scraper_registry: ScraperRegistry | None = None
_indexing_service: IndexingService | None = None
_posthog_client: Posthog | None = None


def get_cache_store(settings: Settings = Depends(get_settings)) -> CacheStore:
    """Get the shared cache store (Redis when REDIS_URL is set, in-process otherwise)."""
    global _cache_store

    if _cache_store is None:
        _cache_store = create_cache_store(settings.redis_url, settings.memory_cache_maxsize)

    return _cache_store


async def close_cache_store() -> None:
    """Close the cache store connection."""
    global _cache_store
    if _cache_store:
        await _cache_store.close()
        _cache_store = None


async def get_catalog(settings: Settings = Depends(get_settings)) -> TrackCatalog:
    """Get the local track catalog.

    A missing database file is not fatal: the catalog stays unconnected, local
    searches fail and the health check reports the catalog as down.

    Raises:
        ServiceInitializationError: If the database exists but cannot be opened
    """
    global _catalog

    if _catalog is None:
        db_path = settings.resolved_catalog_db_path
        catalog = TrackCatalog(db_path=db_path)
        try:
            await catalog.connect()
            logger.info(f"Track catalog connected: {db_path}")
        except FileNotFoundError:
            logger.warning(
                f"Track catalog not found at {db_path}. "
                "Service will start without local results (health check will report unhealthy)."
            )
        except Exception as e:
            logger.error(f"Failed to initialize track catalog: {e}")
            raise ServiceInitializationError(f"Catalog initialization failed: {e}") from e
        _catalog = catalog

    return _catalog


async def close_catalog() -> None:
    """Close the track catalog connection."""
    global _catalog
    if _catalog:
        await _catalog.close()
        _catalog = None


def get_providers(settings: Settings = Depends(get_settings)) -> list[ProviderClient]:
    """Get every provider client; unconfigured ones report is_configured=False."""
    global _providers

    if _providers is None:
        _providers = [
            YouTubeClient(settings.youtube_api_key, timeout=settings.provider_timeout),
            SoundCloudClient(settings.soundcloud_client_id, timeout=settings.provider_timeout),
        ]
        for provider in _providers:
            if not provider.is_configured:
                logger.debug(f"{provider.name} credentials not set - provider disabled")

    return _providers


async def close_providers() -> None:
    """Close provider HTTP clients."""
    global _providers
    if _providers:
        for provider in _providers:
            await provider.close()
        _providers = None


async def get_search_service(
    settings: Settings = Depends(get_settings),
) -> SearchService:
    """Get the search service, wiring catalog, providers and cache."""
    global _search_service

    if _search_service is None:
        catalog = await get_catalog(settings)
        aggregator = Aggregator(catalog, get_providers(settings))
        _search_service = SearchService(aggregator, get_cache_store(settings))
        enabled = [p.name for p in aggregator.available_providers()]
        logger.info(f"Search service initialized (providers: {', '.join(enabled) or 'none'})")

    return _search_service


async def get_rate_limiter(
    settings: Settings = Depends(get_settings),
) -> FixedWindowRateLimiter | None:
    """Get the API rate limiter, or None when rate limiting is disabled."""
    global _rate_limiter

    if not settings.rate_limit_enabled:
        return None

    if _rate_limiter is None:
        _rate_limiter = FixedWindowRateLimiter(
            get_cache_store(settings),
            max_requests=settings.rate_limit_max_requests,
            window=settings.rate_limit_window,
        )

    return _rate_limiter


def get_scraper_registry() -> ScraperRegistry:
    """Get the scraper registry with the built-in scrapers."""
    global _scraper_registry

    if _scraper_registry is None:
        _scraper_registry = create_default_registry()

    return _scraper_registry


def get_indexing_service(settings: Settings = Depends(get_settings)) -> IndexingService:
    """Get the indexing service backed by the shared cache store."""
    global _indexing_service

    if _indexing_service is None:
        _indexing_service = IndexingService(get_scraper_registry(), get_cache_store(settings))

    return _indexing_service


async def close_indexing_service() -> None:
    """Close scraper HTTP clients."""
    global _indexing_service
    global _scraper_registry
    if _scraper_registry:
        await _scraper_registry.close()
        _scraper_registry = None
    _indexing_service = None


def reset_services() -> None:
    """Drop services that hold references to other singletons."""
    global _search_service
    global _rate_limiter
    _search_service = None
    _rate_limiter = None


def get_posthog_client(settings: Settings = Depends(get_settings)) -> Posthog | None:
    """Get PostHog client instance.

    Args:
        settings: Application settings

    Returns:
        Optional[Posthog]: PostHog client if configured and enabled, None otherwise
    """
    global _posthog_client

    if not settings.enable_telemetry:
        logger.debug("Telemetry disabled")
        return None

    if not settings.posthog_api_key:
        logger.debug("POSTHOG_API_KEY not set - telemetry disabled")
        return None

    if _posthog_client is None:
        _posthog_client = Posthog(
            project_api_key=settings.posthog_api_key,
            host=settings.posthog_host,
        )
        logger.info(f"PostHog client initialized (host: {settings.posthog_host})")

    return _posthog_client


def flush_posthog() -> None:
    """Flush any buffered PostHog events."""
    global _posthog_client
    if _posthog_client:
        _posthog_client.flush()


def shutdown_posthog() -> None:
    """Shutdown PostHog client gracefully."""
    global _posthog_client
    if _posthog_client:
        _posthog_client.shutdown()
        _posthog_client = None
        logger.info("PostHog client shutdown")
