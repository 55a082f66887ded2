"""Fan-out search across the local catalog and external providers.

One task per available source runs concurrently under a shared deadline.
Each task hands its results back to the fan-in instead of writing a shared
list, and a failing or slow source contributes nothing rather than failing
the whole search. Results come back source-major (local first, then each
provider); callers must not rely on ordering across sources.
"""

import asyncio
import logging
from collections.abc import Awaitable
from typing import Protocol

from catalog.models import CatalogTrack
from config.settings import get_settings
from core.exceptions import ProviderError, SourceNotConfiguredError, UnsupportedSourceError
from providers.base import ProviderClient
from search.models import KNOWN_SOURCES, SearchResult, SourceTag

logger = logging.getLogger(__name__)


class Catalog(Protocol):
    """Local catalog lookups the aggregator depends on."""

    async def find_by_title(self, title: str) -> list[CatalogTrack]: ...

    async def find_by_artist(self, artist: str) -> list[CatalogTrack]: ...


def catalog_track_to_result(track: CatalogTrack) -> SearchResult:
    """Convert a local catalog track into a unified search result."""
    return SearchResult(
        id=track.id,
        title=track.title,
        artist=track.artist_name,
        duration=track.duration,
        thumbnail=track.thumbnail,
        source=SourceTag.LOCAL,
        stream_url=track.stream_url,
    )


class Aggregator:
    """Combines search results from the local catalog and every configured provider."""

    def __init__(
        self,
        catalog: Catalog,
        providers: list[ProviderClient] | None = None,
        timeout: float | None = None,
        min_per_source: int | None = None,
    ):
        """Initialize the aggregator.

        Args:
            catalog: Local catalog, always searched
            providers: External provider clients; unconfigured ones are skipped
            timeout: Shared deadline in seconds for one fan-out (defaults to settings)
            min_per_source: Floor for the per-source result budget (defaults to settings)
        """
        settings = get_settings()
        self.catalog = catalog
        self.providers: dict[str, ProviderClient] = {p.name: p for p in providers or []}
        self.timeout = timeout if timeout is not None else settings.aggregator_timeout
        self.min_per_source = (
            min_per_source if min_per_source is not None else settings.aggregator_min_per_source
        )

    def available_providers(self) -> list[ProviderClient]:
        """Providers configured with non-empty credentials."""
        return [p for p in self.providers.values() if p.is_configured]

    async def search(self, query: str, max_results: int) -> list[SearchResult]:
        """Search every available source concurrently.

        Never raises for a source failure: a failing source is logged and
        contributes zero results. If every source fails, the result is empty.

        Args:
            query: Normalized query
            max_results: Maximum total results

        Returns:
            Up to max_results results, grouped by source
        """
        providers = self.available_providers()
        per_source = max(max_results // (1 + len(providers)), self.min_per_source)
        deadline = asyncio.get_running_loop().time() + self.timeout

        tasks = [self._collect(SourceTag.LOCAL, self._search_local(query, per_source), deadline)]
        for provider in providers:
            tasks.append(self._collect(provider.name, provider.search(query, per_source), deadline))

        batches = await asyncio.gather(*tasks)
        results = [result for batch in batches for result in batch]

        logger.debug(
            f"Aggregated {len(results)} results for '{query}' from {len(tasks)} sources "
            f"({per_source} per source)"
        )
        return results[:max_results]

    async def _collect(
        self, source: str, query_coro: Awaitable[list[SearchResult]], deadline: float
    ) -> list[SearchResult]:
        """Run one source's query under the shared deadline, absorbing its failures."""
        remaining = max(deadline - asyncio.get_running_loop().time(), 0)
        try:
            return await asyncio.wait_for(query_coro, timeout=remaining)
        except TimeoutError:
            logger.warning(f"Search of {source} timed out after {self.timeout}s")
        except Exception as e:
            logger.error(f"Error searching {source}: {e}")
        return []

    async def search_by_source(
        self, query: str, source: str, max_results: int
    ) -> list[SearchResult]:
        """Search exactly one named source, without fan-out.

        Raises:
            UnsupportedSourceError: If the source tag is unknown
            SourceNotConfiguredError: If the provider has no credentials
            ProviderError: If the source query fails or times out
        """
        if source not in KNOWN_SOURCES:
            raise UnsupportedSourceError(f"Unsupported source: {source}", {"source": source})

        if source == SourceTag.LOCAL:
            query_coro = self._search_local(query, max_results)
        else:
            provider = self.providers.get(source)
            if provider is None or not provider.is_configured:
                raise SourceNotConfiguredError(
                    f"{source} client not configured", {"source": source}
                )
            query_coro = provider.search(query, max_results)

        try:
            results = await asyncio.wait_for(query_coro, timeout=self.timeout)
        except TimeoutError as e:
            raise ProviderError(f"Search of {source} timed out", {"source": source}) from e
        return results[:max_results]

    async def _search_local(self, query: str, max_results: int) -> list[SearchResult]:
        """Search the local catalog by title and by artist, de-duplicated by id."""
        tracks = await self.catalog.find_by_title(query)

        try:
            tracks = tracks + await self.catalog.find_by_artist(query)
        except Exception as e:
            logger.warning(f"Error searching local catalog by artist: {e}")

        seen: set[str] = set()
        results = []
        for track in tracks:
            if track.id in seen:
                continue
            seen.add(track.id)
            results.append(catalog_track_to_result(track))
            if len(results) >= max_results:
                break

        return results
