"""Main application entry point for the Auxstream search service."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from config.settings import get_settings
from core import dependencies
from core.dependencies import (
    close_cache_store,
    close_catalog,
    close_indexing_service,
    close_providers,
    flush_posthog,
    reset_services,
    shutdown_posthog,
)
from core.logging import setup_logging
from core.sentry import init_sentry
from indexer.router import router as indexer_router
from ratelimit.limiter import FixedWindowRateLimiter
from ratelimit.middleware import rate_limit_middleware
from routers.admin import router as admin_router
from routers.health import router as health_router
from search.router import router as search_router

load_dotenv()

settings = get_settings()

init_sentry(
    dsn=settings.sentry_dsn,
    environment="production" if settings.log_level != "DEBUG" else "development",
    release=settings.app_version,
)

log_file = None
if settings.log_level != "DEBUG":
    log_dir = Path("/app/logs") if Path("/app/logs").exists() else Path("logs")
    log_file = log_dir / "auxstream-search.log"
setup_logging(level=settings.log_level, log_file=log_file)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan with proper startup and shutdown."""
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Log level: {settings.log_level}")
    logger.info(f"Cache store: {'redis' if settings.redis_url else 'in-process'}")
    logger.info(
        f"Rate limiting: {settings.rate_limit_max_requests}/{settings.rate_limit_window}s"
        if settings.rate_limit_enabled
        else "Rate limiting: disabled"
    )

    yield

    logger.info("Shutting down application")
    shutdown_posthog()
    reset_services()
    await close_providers()
    await close_indexing_service()
    await close_catalog()
    await close_cache_store()
    logger.info("All services shut down")


app = FastAPI(
    title=settings.app_name,
    description="Unified track search across the local catalog and external providers",
    version=settings.app_version,
    lifespan=lifespan,
)


async def _current_rate_limiter() -> FixedWindowRateLimiter | None:
    return await dependencies.get_rate_limiter(get_settings())


app.middleware("http")(rate_limit_middleware(_current_rate_limiter))


@app.middleware("http")
async def posthog_flush_middleware(request: Request, call_next):
    """Flush PostHog events after each request to prevent data loss."""
    response = await call_next(request)
    flush_posthog()
    return response


@app.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    """Prometheus scrape endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


app.include_router(health_router, prefix="", tags=["health"])
app.include_router(search_router, prefix="/api/v1", tags=["search"])
app.include_router(indexer_router, prefix="/api/v1", tags=["indexer"])
app.include_router(admin_router, prefix="/admin", tags=["admin"])

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
