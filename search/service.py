"""Cache-aside search service wrapping the aggregator.

Queries are normalized before anything else, and the normalized form is also
the cache key basis: two queries that differ only in case or whitespace share
a cache entry. Cache failures never fail a search.
"""

import logging
import time
from datetime import UTC, datetime

from pydantic import ValidationError

from cache.store import CacheStore
from config.settings import get_settings
from core import metrics
from core.exceptions import CacheError, QueryValidationError
from core.telemetry import RequestTelemetry, record_cache_error, record_cache_hit, record_cache_miss
from search.aggregator import Aggregator
from search.models import CacheStatus, SearchRequest, SearchResponse

logger = logging.getLogger(__name__)

ALL_SOURCES = "all"
CACHE_TYPE = "search"


def normalize_query(query: str) -> str:
    """Lower-case, trim and collapse internal whitespace."""
    return " ".join(query.lower().split())


def make_cache_key(query: str, source: str | None, max_results: int) -> str:
    """Build the exact-match cache key for a normalized query."""
    return f"search:{source or ALL_SOURCES}:{query}:{max_results}"


class SearchService:
    """Unified search with a read-through response cache."""

    def __init__(
        self,
        aggregator: Aggregator,
        cache: CacheStore | None = None,
        cache_ttl: int | None = None,
        default_results: int | None = None,
        max_results: int | None = None,
    ):
        settings = get_settings()
        self.aggregator = aggregator
        self.cache = cache
        self.cache_ttl = cache_ttl if cache_ttl is not None else settings.search_cache_ttl
        self.default_results = (
            default_results if default_results is not None else settings.search_default_results
        )
        self.max_results = max_results if max_results is not None else settings.search_max_results

    def clamp_max_results(self, max_results: int | None) -> int:
        """Apply the default for absent/non-positive values and the upper bound."""
        if max_results is None or max_results <= 0:
            return self.default_results
        return min(max_results, self.max_results)

    async def search(
        self, request: SearchRequest, telemetry: RequestTelemetry | None = None
    ) -> SearchResponse:
        """Run a search, serving from cache when possible.

        Args:
            request: The raw search request
            telemetry: Optional per-request telemetry collector

        Returns:
            SearchResponse; cached_at is set only when served from cache

        Raises:
            QueryValidationError: If the query is empty after normalization
            UnsupportedSourceError, SourceNotConfiguredError, ProviderError:
                For single-source searches that cannot be served
        """
        telemetry = telemetry or RequestTelemetry()
        start = time.perf_counter()

        query = normalize_query(request.query)
        if not query:
            raise QueryValidationError("query cannot be empty")

        max_results = self.clamp_max_results(request.max_results)
        source_label = request.source or ALL_SOURCES
        cache_key = make_cache_key(query, request.source, max_results)

        if self.cache is not None:
            with telemetry.track_step("cache_lookup"):
                cached = await self._get_from_cache(cache_key)
            if cached is not None:
                metrics.record_cache_hit(CACHE_TYPE)
                record_cache_hit()
                logger.debug(f"Search cache hit for '{query}' (source: {source_label})")
                metrics.record_search_request(source_label, "success", time.perf_counter() - start)
                telemetry.record_results(r.source for r in cached.results)
                return cached
            metrics.record_cache_miss(CACHE_TYPE)
            record_cache_miss()

        try:
            with telemetry.track_step("aggregate"):
                if request.source:
                    results = await self.aggregator.search_by_source(
                        query, request.source, max_results
                    )
                else:
                    results = await self.aggregator.search(query, max_results)
        except Exception as e:
            logger.error(f"Search failed for '{query}' (source: {source_label}): {e}")
            metrics.record_search_request(source_label, "error", time.perf_counter() - start)
            raise

        response = SearchResponse(
            query=query,
            results=results,
            total_count=len(results),
            source=request.source,
            searched_at=datetime.now(UTC),
        )

        if self.cache is not None:
            with telemetry.track_step("cache_write"):
                await self._write_to_cache(cache_key, response)

        duration = time.perf_counter() - start
        logger.info(
            f"Search completed for '{query}' (source: {source_label}): "
            f"{len(results)} results in {duration * 1000:.1f}ms"
        )
        metrics.record_search_request(source_label, "success", duration)
        telemetry.record_results(r.source for r in results)
        return response

    async def _get_from_cache(self, cache_key: str) -> SearchResponse | None:
        """Load a cached response and stamp it with a fresh cached_at, or None."""
        assert self.cache is not None
        try:
            raw = await self.cache.get_string(cache_key)
        except CacheError as e:
            logger.warning(f"Search cache lookup failed, falling back to sources: {e}")
            record_cache_error()
            return None
        if raw is None:
            return None

        try:
            response = SearchResponse.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable cached search response {cache_key}: {e}")
            return None

        return response.model_copy(update={"cached_at": datetime.now(UTC)})

    async def _write_to_cache(self, cache_key: str, response: SearchResponse) -> None:
        """Best-effort cache write; failures are logged, never raised."""
        assert self.cache is not None
        try:
            await self.cache.set_string(cache_key, response.model_dump_json(), self.cache_ttl)
        except CacheError as e:
            logger.warning(f"Failed to cache search results for {cache_key}: {e}")
            record_cache_error()

    def _key_for(self, query: str, source: str | None, max_results: int | None) -> str:
        return make_cache_key(normalize_query(query), source, self.clamp_max_results(max_results))

    async def invalidate_cache(
        self, query: str, source: str | None, max_results: int | None
    ) -> None:
        """Remove the cached response for a (query, source, max_results) tuple."""
        if self.cache is None:
            return
        cache_key = self._key_for(query, source, max_results)
        await self.cache.delete(cache_key)
        logger.info(f"Invalidated search cache entry {cache_key}")

    async def get_cache_status(
        self, query: str, source: str | None, max_results: int | None
    ) -> CacheStatus:
        """Report whether a query is cached and its remaining TTL in seconds."""
        if self.cache is None:
            return CacheStatus(cached=False)

        cache_key = self._key_for(query, source, max_results)
        try:
            if not await self.cache.exists(cache_key):
                return CacheStatus(cached=False)
            ttl = await self.cache.ttl(cache_key)
        except CacheError as e:
            logger.warning(f"Cache status lookup failed for {cache_key}: {e}")
            record_cache_error()
            return CacheStatus(cached=False)

        return CacheStatus(cached=True, ttl_seconds=max(ttl, 0.0))
