"""Indexed tracks API router."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from core.dependencies import get_indexing_service
from core.exceptions import NoScraperError, ScraperError, UnsupportedURLError
from indexer.models import IndexURLRequest, ScrapedMetadata
from indexer.service import IndexingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/indexed", tags=["indexer"])


@router.get(
    "/{source}/search",
    response_model=list[ScrapedMetadata],
    summary="Search indexed tracks of one source",
    responses={200: {"description": "Matching indexed tracks (possibly empty)"}},
)
async def search_indexed(
    source: str,
    q: str = Query(..., min_length=1, description="Substring of title or artist"),
    limit: int = Query(20, ge=1, le=100, description="Max results"),
    service: IndexingService = Depends(get_indexing_service),
) -> list[ScrapedMetadata]:
    """Search tracks the indexer has scraped for a source."""
    return await service.search_indexed_tracks(source, q, limit)


@router.get(
    "/{source}",
    response_model=list[ScrapedMetadata],
    summary="List recently indexed tracks of one source",
    responses={200: {"description": "Most recently indexed tracks"}},
)
async def list_indexed(
    source: str,
    limit: int = Query(20, ge=1, le=100, description="Max results"),
    service: IndexingService = Depends(get_indexing_service),
) -> list[ScrapedMetadata]:
    """List the most recently indexed tracks for a source."""
    return await service.get_indexed_tracks(source, limit)


@router.post(
    "",
    response_model=ScrapedMetadata,
    summary="Index a single track page",
    responses={
        200: {"description": "Track indexed (or already cached)"},
        400: {"description": "URL is not from a source with a scraper"},
        502: {"description": "Page could not be scraped"},
    },
)
async def index_url(
    request: IndexURLRequest,
    service: IndexingService = Depends(get_indexing_service),
) -> ScrapedMetadata:
    """Scrape a track page now and add it to the index."""
    try:
        return await service.index_url(request.url)
    except (UnsupportedURLError, NoScraperError) as e:
        raise HTTPException(status_code=400, detail=e.message) from e
    except ScraperError as e:
        raise HTTPException(status_code=502, detail=e.message) from e
