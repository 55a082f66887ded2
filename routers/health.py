"""Health check router with real dependency connectivity checks."""

import asyncio
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from cache.store import CacheStore
from catalog.db import TrackCatalog
from config.settings import Settings, get_settings
from core.dependencies import get_cache_store, get_catalog, get_providers
from providers.base import ProviderClient

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

CHECK_TIMEOUT = 3.0
CORE_SERVICES = {"catalog", "cache"}


async def _check_catalog(catalog: TrackCatalog) -> str:
    """Ping the SQLite catalog."""
    return "ok" if await catalog.is_available() else "error"


async def _check_cache(cache: CacheStore) -> str:
    """Ping the cache store."""
    return "ok" if await cache.is_available() else "error"


async def _check_provider(provider: ProviderClient) -> str:
    """Ping a provider API with a minimal search."""
    if not provider.is_configured:
        return "unavailable"
    return "ok" if await provider.check_api() else "error"


async def _run_check(coro) -> str:
    """Run a single health check with a timeout."""
    try:
        return await asyncio.wait_for(coro, timeout=CHECK_TIMEOUT)
    except TimeoutError:
        return "timeout"


@router.get(
    "/health",
    summary="Health check",
    responses={
        200: {"description": "Service is healthy or degraded"},
        503: {"description": "Service is unhealthy (core dependency down)"},
    },
)
async def health_check(
    settings: Settings = Depends(get_settings),
    catalog: TrackCatalog = Depends(get_catalog),
    cache: CacheStore = Depends(get_cache_store),
    providers: list[ProviderClient] = Depends(get_providers),
):
    """Health check with real connectivity probes for every dependency."""
    results = await asyncio.gather(
        _run_check(_check_catalog(catalog)),
        _run_check(_check_cache(cache)),
        *(_run_check(_check_provider(p)) for p in providers),
    )

    services = {"catalog": results[0], "cache": results[1]}
    for provider, result in zip(providers, results[2:], strict=True):
        services[f"{provider.name}_api"] = result

    core_ok = all(services[s] == "ok" for s in CORE_SERVICES)
    all_configured_ok = all(v in ("ok", "unavailable") for v in services.values())

    if core_ok and all_configured_ok:
        status = "healthy"
    elif core_ok:
        status = "degraded"
    else:
        status = "unhealthy"

    body = {
        "status": status,
        "version": settings.app_version,
        "services": services,
    }

    status_code = 200 if status in ("healthy", "degraded") else 503
    return JSONResponse(content=body, status_code=status_code)
