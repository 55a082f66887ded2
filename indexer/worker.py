"""Scheduled background indexing of configured source URL lists."""

import asyncio
import logging
import random
import time
from enum import StrEnum
from pathlib import Path

import yaml

from config.settings import get_settings
from core import metrics
from core.exceptions import ConfigurationError
from core.sentry import capture_exception
from indexer.models import IndexingPassResult, SourcePassResult
from indexer.service import IndexingService

logger = logging.getLogger(__name__)


class WorkerState(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class IndexerWorker:
    """Runs indexing passes over every configured source on a fixed interval.

    A pass indexes each source concurrently. A failure inside one source's
    task is contained: that source's URLs all count as failed and the other
    sources are unaffected.
    """

    def __init__(
        self,
        service: IndexingService,
        interval: float | None = None,
        max_jitter: float | None = None,
    ):
        """Initialize the worker.

        Args:
            service: Indexing service used for each batch
            interval: Seconds between passes (defaults to settings)
            max_jitter: Max random delay in seconds before each scheduled pass
        """
        settings = get_settings()
        self.service = service
        self.interval = (
            interval if interval is not None else settings.indexer_interval_hours * 3600
        )
        self.max_jitter = max_jitter if max_jitter is not None else settings.indexer_max_jitter
        self.state = WorkerState.IDLE
        self._url_lists: dict[str, list[str]] = {}

    @property
    def sources(self) -> dict[str, list[str]]:
        """A copy of the current source to URL mapping."""
        return {source: list(urls) for source, urls in self._url_lists.items()}

    def add_url_list(self, source: str, urls: list[str]) -> None:
        """Register (or replace) the URL list for a source."""
        self._url_lists[source] = list(urls)

    def load_sources(self, path: Path) -> int:
        """Load source URL lists from a YAML file with a top-level sources mapping.

        Returns:
            Number of sources loaded

        Raises:
            ConfigurationError: If the file is missing, unparseable or lists no sources
        """
        try:
            with open(path, encoding="utf-8") as f:
                config = yaml.safe_load(f) or {}
        except OSError as e:
            logger.error(f"Failed to read external sources config {path}: {e}")
            raise ConfigurationError(f"Failed to read config: {e}", {"path": str(path)}) from e
        except yaml.YAMLError as e:
            logger.error(f"Failed to parse external sources config {path}: {e}")
            raise ConfigurationError(f"Failed to parse config: {e}", {"path": str(path)}) from e

        sources = config.get("sources") if isinstance(config, dict) else None
        if not isinstance(sources, dict) or not sources:
            logger.warning(f"No sources found in config file {path}")
            raise ConfigurationError("No sources found in config", {"path": str(path)})

        loaded = 0
        for source, urls in sources.items():
            if urls:
                self.add_url_list(str(source), [str(url) for url in urls])
                logger.info(f"Loaded external source {source} ({len(urls)} URLs)")
                loaded += 1

        logger.info(f"Loaded {loaded} external sources from {path}")
        return loaded

    async def start(self, stop_event: asyncio.Event) -> None:
        """Run a pass now, then one per interval until stop_event is set.

        The event is only observed between passes; a running pass completes.
        """
        logger.info(f"Indexer worker started (interval: {self.interval}s)")
        await self.run_indexing_once()

        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval)
                break
            except TimeoutError:
                pass

            await asyncio.sleep(random.uniform(0, self.max_jitter))
            await self.run_indexing_once()

        self.state = WorkerState.STOPPED
        logger.warning("Indexer worker stopped")

    async def run_indexing_once(self) -> IndexingPassResult:
        """Run exactly one indexing pass over a snapshot of the sources."""
        self.state = WorkerState.RUNNING
        start = time.perf_counter()

        sources = {source: urls for source, urls in self.sources.items() if urls}
        logger.info(f"Starting indexing pass over {len(sources)} sources")

        try:
            counts = await asyncio.gather(
                *(self._index_source(source, urls) for source, urls in sources.items())
            )
        finally:
            self.state = WorkerState.IDLE

        result = IndexingPassResult(
            sources=dict(zip(sources, counts, strict=True)),
            total_succeeded=sum(c.succeeded for c in counts),
            total_failed=sum(c.failed for c in counts),
            duration_seconds=time.perf_counter() - start,
        )
        metrics.record_indexer_job(
            result.duration_seconds, result.total_succeeded, result.total_failed
        )
        logger.info(
            f"Indexing pass completed: {result.total_succeeded} succeeded, "
            f"{result.total_failed} failed in {result.duration_seconds:.1f}s"
        )
        return result

    async def _index_source(self, source: str, urls: list[str]) -> SourcePassResult:
        logger.info(f"Indexing source {source} ({len(urls)} URLs)")
        try:
            succeeded, failed = await self.service.index_batch(urls)
        except Exception as e:
            logger.error(f"Indexing source {source} failed: {e}")
            capture_exception(e, {"source": source, "url_count": len(urls)}, "indexer")
            return SourcePassResult(succeeded=0, failed=len(urls))

        logger.info(f"Source {source} done: {succeeded} succeeded, {failed} failed")
        return SourcePassResult(succeeded=succeeded, failed=failed)
