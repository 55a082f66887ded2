"""Metadata scrapers for third-party track pages.

Scrapers read the Open Graph / music meta tags a track page exposes. Each
scraper owns one source name; the registry maps page URLs to scrapers.
"""

import hashlib
import logging
from abc import ABC, abstractmethod

import httpx
from bs4 import BeautifulSoup

from config.settings import get_settings
from core.durations import parse_duration
from core.exceptions import ScraperError
from indexer.models import ScrapedMetadata

logger = logging.getLogger(__name__)

BROWSER_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

# Checked in order; first host fragment found in the URL wins
SOURCE_HOSTS: tuple[tuple[str, str], ...] = (
    ("audiomack.com", "audiomack"),
    ("boomplay.com", "boomplay"),
    ("soundcloud.com", "soundcloud"),
    ("youtube.com", "youtube"),
    ("youtu.be", "youtube"),
)


def detect_source_from_url(url: str) -> str:
    """Map a URL to its source name by host substring, or "" if unknown."""
    lowered = url.lower()
    for host, source in SOURCE_HOSTS:
        if host in lowered:
            return source
    return ""


def generate_track_id(source: str, url: str) -> str:
    """Stable track id: md5 hex digest of "<source>:<url>"."""
    return hashlib.md5(f"{source}:{url}".encode()).hexdigest()


def extract_duration(value: str | None) -> int:
    """Parse a scraped duration ("M:S" or PT#H#M#S) into seconds, 0 if unknown."""
    return parse_duration(value)


def _meta_content(soup: BeautifulSoup, **attrs: str) -> str:
    tag = soup.find("meta", attrs=attrs)
    if tag is None:
        return ""
    content = tag.get("content")
    return content.strip() if isinstance(content, str) else ""


class MetadataScraper(ABC):
    """A scraper for one source's track pages."""

    source_name: str

    @abstractmethod
    async def scrape_track(self, url: str) -> ScrapedMetadata:
        """Fetch a track page and extract its metadata.

        Raises:
            ScraperError: If the page cannot be fetched
        """

    @abstractmethod
    async def search_tracks(self, query: str, limit: int) -> list[ScrapedMetadata]:
        """Search the source for tracks."""

    async def close(self) -> None:
        """Release any HTTP resources."""


class BaseScraper(MetadataScraper):
    """Shared page fetching and parsing for HTML scrapers."""

    def __init__(self, timeout: float | None = None, client: httpx.AsyncClient | None = None):
        self.timeout = timeout if timeout is not None else get_settings().scraper_timeout
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"User-Agent": BROWSER_USER_AGENT},
                follow_redirects=True,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch_html(self, url: str) -> BeautifulSoup:
        """GET a page and parse it.

        Raises:
            ScraperError: On transport errors or any non-200 response
        """
        client = await self._get_client()
        try:
            response = await client.get(url)
        except httpx.RequestError as e:
            raise ScraperError(f"Failed to fetch {url}: {e}", {"url": url}) from e

        if response.status_code != 200:
            raise ScraperError(
                f"HTTP {response.status_code} fetching {url}",
                {"url": url, "status": response.status_code},
            )

        return BeautifulSoup(response.text, "html.parser")

    async def search_tracks(self, query: str, limit: int) -> list[ScrapedMetadata]:
        logger.info(f"{self.source_name} search is not supported yet (query: '{query}')")
        return []


class AudiomackScraper(BaseScraper):
    source_name = "audiomack"

    async def scrape_track(self, url: str) -> ScrapedMetadata:
        soup = await self.fetch_html(url)
        return ScrapedMetadata(
            id=generate_track_id(self.source_name, url),
            title=_meta_content(soup, property="og:title"),
            artist=_meta_content(soup, name="music:musician"),
            thumbnail=_meta_content(soup, property="og:image"),
            description=_meta_content(soup, property="og:description"),
            duration=extract_duration(_meta_content(soup, property="music:duration")),
            source_url=url,
            source=self.source_name,
        )


class BoomplayScraper(BaseScraper):
    source_name = "boomplay"

    async def scrape_track(self, url: str) -> ScrapedMetadata:
        soup = await self.fetch_html(url)

        title = _meta_content(soup, property="og:title")
        artist = ""
        # Boomplay titles read "<artist> - <title>"
        if " - " in title:
            artist, title = title.split(" - ", 1)

        return ScrapedMetadata(
            id=generate_track_id(self.source_name, url),
            title=title,
            artist=artist,
            thumbnail=_meta_content(soup, property="og:image"),
            description=_meta_content(soup, property="og:description"),
            source_url=url,
            source=self.source_name,
        )
