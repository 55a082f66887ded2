"""Unified search API router."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from posthog import Posthog

from core.dependencies import get_posthog_client, get_search_service
from core.exceptions import (
    ProviderError,
    QueryValidationError,
    SourceNotConfiguredError,
    UnsupportedSourceError,
)
from core.telemetry import RequestTelemetry, init_cache_stats
from search.models import CacheStatus, SearchRequest, SearchResponse
from search.service import SearchService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["search"])


@router.get(
    "/search",
    summary="Search tracks across the local catalog and external providers",
    description="""
    Searches the local catalog and every configured provider concurrently and
    merges the results. Responses are cached for 24 hours per
    (normalized query, source, max_results).

    Set `source` to `local`, `youtube` or `soundcloud` to search a single source.

    Example request:
    ```
    GET /api/v1/search?q=Burna+Boy&max_results=10
    ```
    """,
    responses={
        200: {"description": "Search results returned (possibly empty)"},
        400: {"description": "Empty query or unsupported source"},
        502: {"description": "Single-source search failed upstream"},
        503: {"description": "Requested provider is not configured"},
    },
)
async def search_tracks(
    q: str = Query(..., description="Search query"),
    source: str | None = Query(None, description="Restrict to one source"),
    max_results: int | None = Query(None, description="Max results (default 20, max 50)"),
    service: SearchService = Depends(get_search_service),
    posthog_client: Posthog | None = Depends(get_posthog_client),
) -> dict[str, SearchResponse]:
    """Search for tracks."""
    init_cache_stats()
    telemetry = RequestTelemetry()

    try:
        response = await service.search(
            SearchRequest(query=q, source=source, max_results=max_results), telemetry
        )
    except (QueryValidationError, UnsupportedSourceError) as e:
        raise HTTPException(status_code=400, detail=e.message) from e
    except SourceNotConfiguredError as e:
        raise HTTPException(status_code=503, detail=e.message) from e
    except ProviderError as e:
        raise HTTPException(status_code=502, detail=e.message) from e
    except Exception as e:
        logger.error(f"Search failed: {e}")
        raise HTTPException(status_code=500, detail="Internal server error") from e

    if posthog_client:
        telemetry.send_to_posthog(
            posthog_client,
            {
                "results_count": response.total_count,
                "source": source or "all",
                "cached": response.cached_at is not None,
            },
        )

    return {"data": response}


@router.get(
    "/search/cache-status",
    response_model=CacheStatus,
    summary="Check whether a search is cached",
    responses={200: {"description": "Cache status returned"}},
)
async def get_search_cache_status(
    q: str = Query(..., description="Search query"),
    source: str | None = Query(None, description="Source the search was restricted to"),
    max_results: int | None = Query(None, description="max_results of the cached search"),
    service: SearchService = Depends(get_search_service),
) -> CacheStatus:
    """Report whether a (query, source, max_results) search is cached, and its TTL."""
    return await service.get_cache_status(q, source, max_results)
