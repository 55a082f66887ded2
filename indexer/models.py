"""Pydantic models for scraped track metadata and indexing passes."""

from datetime import datetime

from pydantic import BaseModel, Field


class ScrapedMetadata(BaseModel):
    """Track metadata scraped from a third-party page."""

    id: str  # md5 of "<source>:<url>"
    title: str = ""
    artist: str = ""
    album: str = ""
    duration: int = 0  # seconds
    thumbnail: str = ""
    source_url: str
    source: str
    description: str = ""
    release_date: datetime | None = None
    genre: str = ""


class IndexURLRequest(BaseModel):
    """Request body for on-demand indexing of a single page."""

    url: str = Field(..., min_length=1, description="Track page URL to scrape")


class SourcePassResult(BaseModel):
    """Counts for one source within an indexing pass."""

    succeeded: int = 0
    failed: int = 0


class IndexingPassResult(BaseModel):
    """Summary of one full indexing pass across every source."""

    sources: dict[str, SourcePassResult] = {}
    total_succeeded: int = 0
    total_failed: int = 0
    duration_seconds: float = 0.0
