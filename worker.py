"""Background indexer worker entry point.

Usage:
    python worker.py                      # index every 24 hours until stopped
    python worker.py --once               # run one pass and exit
    python worker.py --interval 6 --config config/ext_sources.yaml
"""

import asyncio
import signal
import sys
from pathlib import Path

import click
from dotenv import load_dotenv

from cache.store import create_cache_store
from config.settings import get_settings
from core.exceptions import ConfigurationError
from core.logging import get_logger, setup_logging
from core.sentry import init_sentry
from indexer.registry import create_default_registry
from indexer.service import IndexingService
from indexer.worker import IndexerWorker

logger = get_logger("worker")


async def run_worker(interval_hours: float, config_path: Path, once: bool) -> int:
    """Run the indexer until stopped; returns a process exit code."""
    settings = get_settings()
    cache = create_cache_store(settings.redis_url, settings.memory_cache_maxsize)

    if not await cache.is_available():
        logger.error("Cache store is unreachable, exiting")
        await cache.close()
        return 1

    registry = create_default_registry()
    worker = IndexerWorker(IndexingService(registry, cache), interval=interval_hours * 3600)

    try:
        worker.load_sources(config_path)
    except ConfigurationError as e:
        logger.error(f"Cannot start indexer: {e.message}")
        await registry.close()
        await cache.close()
        return 1

    try:
        if once:
            result = await worker.run_indexing_once()
            logger.info(
                f"Single pass finished: {result.total_succeeded} succeeded, "
                f"{result.total_failed} failed"
            )
        else:
            stop_event = asyncio.Event()
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, stop_event.set)
            await worker.start(stop_event)
    finally:
        await registry.close()
        await cache.close()

    return 0


@click.command()
@click.option("--interval", default=24.0, show_default=True, help="Hours between passes")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="YAML file listing source URLs (defaults to INDEXER_SOURCES_PATH)",
)
@click.option("--once", is_flag=True, help="Run a single indexing pass and exit")
def main(interval: float, config_path: Path | None, once: bool) -> None:
    """Crawl configured third-party pages into the indexed track cache."""
    load_dotenv()
    settings = get_settings()

    init_sentry(
        dsn=settings.sentry_dsn,
        environment="production" if settings.log_level != "DEBUG" else "development",
        release=settings.app_version,
    )
    setup_logging(level=settings.log_level)

    logger.info(f"Starting indexer worker (interval: {interval}h, once: {once})")
    sys.exit(asyncio.run(run_worker(interval, config_path or settings.indexer_sources_path, once)))


if __name__ == "__main__":
    main()
