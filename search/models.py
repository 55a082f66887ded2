"""Pydantic models for unified search requests and responses."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class SourceTag(StrEnum):
    """Statically known origins of search results."""

    LOCAL = "local"
    YOUTUBE = "youtube"
    SOUNDCLOUD = "soundcloud"


KNOWN_SOURCES = frozenset(tag.value for tag in SourceTag)


class SearchResult(BaseModel):
    """A unified search result from any source."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    artist: str = ""
    duration: int = 0  # seconds
    thumbnail: str = ""
    source: SourceTag
    external_id: str | None = None
    stream_url: str = ""
    description: str | None = None


class SearchRequest(BaseModel):
    """A search query as received from the caller, before normalization."""

    query: str
    max_results: int | None = None
    source: str | None = None  # "local", a provider name, or None for all


class SearchResponse(BaseModel):
    """Search results with metadata about how they were produced."""

    query: str
    results: list[SearchResult] = []
    total_count: int = 0
    source: str | None = None
    cached_at: datetime | None = None
    searched_at: datetime


class CacheStatus(BaseModel):
    """Whether a query is currently cached, and for how long."""

    cached: bool
    ttl_seconds: float = 0.0
