"""Indexing of scraped track pages into the cache-backed index.

Each scraped track is cached under indexed_track:<url>, and prepended to a
per-source list under indexed_search_all:<source> (most recent first, capped).
The list update is a read-modify-write without locking, so two concurrent
index_url calls for the same source can drop one of the two entries from the
list. The per-URL entry is always written.
"""

import logging

from pydantic import TypeAdapter, ValidationError

from cache.store import CacheStore
from config.settings import get_settings
from core import metrics
from core.exceptions import CacheError
from indexer.models import ScrapedMetadata
from indexer.registry import ScraperRegistry
from indexer.scrapers import detect_source_from_url

logger = logging.getLogger(__name__)

CACHE_TYPE = "indexed_track"

_track_list = TypeAdapter(list[ScrapedMetadata])


def track_key(url: str) -> str:
    return f"indexed_track:{url}"


def index_list_key(source: str) -> str:
    return f"indexed_search_all:{source}"


class IndexingService:
    """Scrapes track pages and maintains the per-source index lists."""

    def __init__(
        self,
        registry: ScraperRegistry,
        cache: CacheStore,
        ttl: int | None = None,
        list_cap: int | None = None,
    ):
        settings = get_settings()
        self.registry = registry
        self.cache = cache
        self.ttl = ttl if ttl is not None else settings.indexed_track_ttl
        self.list_cap = list_cap if list_cap is not None else settings.indexed_list_cap

    async def index_url(self, url: str) -> ScrapedMetadata:
        """Return metadata for url, scraping only when it is not cached.

        Raises:
            ScraperError: If the page cannot be scraped (including unsupported URLs)
        """
        cached = await self._get_cached_track(url)
        if cached is not None:
            metrics.record_cache_hit(CACHE_TYPE)
            return cached

        metrics.record_cache_miss(CACHE_TYPE)

        try:
            metadata = await self.registry.scrape_url(url)
        except Exception as e:
            logger.error(f"Failed to scrape {url}: {e}")
            metrics.record_track_indexed(detect_source_from_url(url), "failed")
            raise

        try:
            await self.cache.set(track_key(url), metadata, self.ttl)
            await self._add_to_index(metadata)
        except CacheError as e:
            logger.warning(f"Failed to cache indexed track {url}: {e}")

        logger.debug(f"Indexed '{metadata.artist} - {metadata.title}' from {metadata.source}")
        metrics.record_track_indexed(metadata.source, "success")
        return metadata

    async def _get_cached_track(self, url: str) -> ScrapedMetadata | None:
        try:
            data = await self.cache.get(track_key(url))
        except CacheError as e:
            logger.warning(f"Indexed track lookup failed for {url}: {e}")
            return None
        if data is None:
            return None
        try:
            return ScrapedMetadata.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable indexed track {url}: {e}")
            return None

    async def _load_index(self, source: str) -> list[ScrapedMetadata]:
        """Read a source's index list; raises CacheError on store failure."""
        data = await self.cache.get(index_list_key(source))
        if data is None:
            return []
        try:
            return _track_list.validate_python(data)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable index list for {source}: {e}")
            return []

    async def _add_to_index(self, metadata: ScrapedMetadata) -> None:
        tracks = await self._load_index(metadata.source)
        tracks = [metadata, *tracks][: self.list_cap]
        await self.cache.set(index_list_key(metadata.source), tracks, self.ttl)

    async def index_batch(self, urls: list[str]) -> tuple[int, int]:
        """Index URLs one after another; a failing URL does not stop the batch.

        Returns:
            (succeeded, failed) counts
        """
        succeeded = 0
        failed = 0
        for url in urls:
            try:
                await self.index_url(url)
            except Exception:
                failed += 1
            else:
                succeeded += 1
        return succeeded, failed

    async def get_indexed_tracks(self, source: str, limit: int) -> list[ScrapedMetadata]:
        """Most recently indexed tracks for a source."""
        try:
            tracks = await self._load_index(source)
        except CacheError as e:
            logger.warning(f"Index lookup failed for {source}: {e}")
            return []
        return tracks[:limit]

    async def search_indexed_tracks(
        self, source: str, query: str, limit: int
    ) -> list[ScrapedMetadata]:
        """Case-insensitive substring match on title or artist within one source."""
        try:
            tracks = await self._load_index(source)
        except CacheError as e:
            logger.warning(f"Index search failed for {source}: {e}")
            return []

        needle = query.lower()
        results = []
        for track in tracks:
            if needle in track.title.lower() or needle in track.artist.lower():
                results.append(track)
                if len(results) >= limit:
                    break
        return results
