"""Admin endpoints for service management."""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from fastapi.responses import JSONResponse

from config.settings import Settings, get_settings
from core.dependencies import get_rate_limiter, get_search_service
from core.exceptions import CacheError
from ratelimit.limiter import FixedWindowRateLimiter, RateLimitStatus
from search.service import SearchService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin"])


def _validate_auth(
    settings: Settings,
    authorization: str | None,
) -> None:
    """Validate bearer token against ADMIN_TOKEN setting."""
    if not settings.admin_token:
        raise HTTPException(status_code=403, detail="Admin endpoint disabled (no ADMIN_TOKEN set)")

    if not authorization:
        raise HTTPException(status_code=401, detail="Missing authorization")

    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or parts[1] != settings.admin_token:
        raise HTTPException(status_code=403, detail="Invalid token")


def _require_limiter(limiter: FixedWindowRateLimiter | None) -> FixedWindowRateLimiter:
    if limiter is None:
        raise HTTPException(status_code=404, detail="Rate limiting is disabled")
    return limiter


@router.get(
    "/rate-limit/{identifier}",
    response_model=RateLimitStatus,
    summary="Show a client's rate limit usage",
    responses={
        200: {"description": "Current usage returned"},
        401: {"description": "Missing authorization"},
        403: {"description": "Invalid or missing token"},
        404: {"description": "Rate limiting disabled"},
    },
)
async def get_rate_limit_status(
    identifier: str,
    settings: Settings = Depends(get_settings),
    authorization: str | None = Header(None),
    limiter: FixedWindowRateLimiter | None = Depends(get_rate_limiter),
) -> RateLimitStatus:
    """Report requests used in the current window for a client identifier.

    The identifier is the full counter name, e.g. ``ip:10.0.0.1`` or ``user:42``.
    """
    _validate_auth(settings, authorization)
    return await _require_limiter(limiter).get_status(identifier)


@router.delete(
    "/rate-limit/{identifier}",
    summary="Reset a client's rate limit",
    responses={
        200: {"description": "Counter cleared"},
        401: {"description": "Missing authorization"},
        403: {"description": "Invalid or missing token"},
        404: {"description": "Rate limiting disabled"},
        503: {"description": "Cache store unavailable"},
    },
)
async def reset_rate_limit(
    identifier: str,
    settings: Settings = Depends(get_settings),
    authorization: str | None = Header(None),
    limiter: FixedWindowRateLimiter | None = Depends(get_rate_limiter),
):
    """Clear the rate limit counter for a client identifier."""
    _validate_auth(settings, authorization)

    try:
        await _require_limiter(limiter).reset(identifier)
    except CacheError as e:
        raise HTTPException(status_code=503, detail=e.message) from e

    return JSONResponse(
        content={
            "status": "ok",
            "identifier": identifier,
            "timestamp": datetime.now(UTC).isoformat(),
        }
    )


@router.delete(
    "/search-cache",
    summary="Invalidate a cached search",
    responses={
        200: {"description": "Cache entry removed (or was absent)"},
        401: {"description": "Missing authorization"},
        403: {"description": "Invalid or missing token"},
        503: {"description": "Cache store unavailable"},
    },
)
async def invalidate_search_cache(
    q: str = Query(..., description="Search query"),
    source: str | None = Query(None, description="Source the search was restricted to"),
    max_results: int | None = Query(None, description="max_results of the cached search"),
    settings: Settings = Depends(get_settings),
    authorization: str | None = Header(None),
    service: SearchService = Depends(get_search_service),
):
    """Drop the cached response for a (query, source, max_results) search."""
    _validate_auth(settings, authorization)

    try:
        await service.invalidate_cache(q, source, max_results)
    except CacheError as e:
        raise HTTPException(status_code=503, detail=e.message) from e

    return JSONResponse(
        content={
            "status": "ok",
            "query": q,
            "timestamp": datetime.now(UTC).isoformat(),
        }
    )
