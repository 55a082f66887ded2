"""Registry mapping source names to metadata scrapers."""

import logging

from core.exceptions import NoScraperError, UnsupportedURLError
from core.sentry import add_breadcrumb
from indexer.models import ScrapedMetadata
from indexer.scrapers import (
    AudiomackScraper,
    BoomplayScraper,
    MetadataScraper,
    detect_source_from_url,
)

logger = logging.getLogger(__name__)


class ScraperRegistry:
    """Dispatches page URLs to the scraper registered for their source."""

    def __init__(self, scrapers: list[MetadataScraper] | None = None):
        self._scrapers: dict[str, MetadataScraper] = {}
        for scraper in scrapers or []:
            self.register(scraper)

    def register(self, scraper: MetadataScraper) -> None:
        """Register a scraper, replacing any previous one for the same source."""
        self._scrapers[scraper.source_name] = scraper
        logger.debug(f"Registered scraper for {scraper.source_name}")

    def get_scraper(self, source: str) -> MetadataScraper | None:
        return self._scrapers.get(source)

    @property
    def sources(self) -> list[str]:
        return sorted(self._scrapers)

    async def scrape_url(self, url: str) -> ScrapedMetadata:
        """Scrape a page with the scraper for its source.

        Raises:
            UnsupportedURLError: If the URL matches no known source
            NoScraperError: If the source is known but has no registered scraper
            ScraperError: If the scrape itself fails
        """
        source = detect_source_from_url(url)
        if not source:
            raise UnsupportedURLError(f"Unsupported URL: {url}", {"url": url})

        scraper = self.get_scraper(source)
        if scraper is None:
            raise NoScraperError(f"No scraper for source: {source}", {"source": source})

        add_breadcrumb("indexer", "scrape_url", {"source": source, "url": url})
        return await scraper.scrape_track(url)

    async def close(self) -> None:
        for scraper in self._scrapers.values():
            await scraper.close()


def create_default_registry() -> ScraperRegistry:
    """Registry with every built-in scraper."""
    return ScraperRegistry([AudiomackScraper(), BoomplayScraper()])
