"""YouTube Data API v3 client."""

import logging

from core.durations import parse_iso8601_duration
from core.exceptions import ProviderError
from providers.base import ProviderClient
from search.models import SearchResult, SourceTag

logger = logging.getLogger(__name__)

YOUTUBE_API_BASE = "https://www.googleapis.com/youtube/v3"
MUSIC_CATEGORY_ID = "10"
# videos.list accepts at most 50 ids per call
DETAILS_BATCH_SIZE = 50


class YouTubeClient(ProviderClient):
    """Searches YouTube music videos and resolves their durations."""

    name = SourceTag.YOUTUBE
    base_url = YOUTUBE_API_BASE

    async def search(self, query: str, max_results: int) -> list[SearchResult]:
        """Search YouTube for music videos.

        Args:
            query: Normalized search query
            max_results: Maximum number of results

        Returns:
            List of SearchResult tagged "youtube"
        """
        self._require_configured()

        data = await self._get_json(
            "/search",
            {
                "part": "snippet",
                "q": query,
                "type": "video",
                "videoCategoryId": MUSIC_CATEGORY_ID,
                "maxResults": max_results,
                "key": self.credential,
            },
        )

        items = [item for item in data.get("items", []) if item.get("id", {}).get("videoId")]
        video_ids = [item["id"]["videoId"] for item in items]

        try:
            durations = await self._get_video_durations(video_ids)
        except ProviderError as e:
            # Durations are cosmetic; keep the results
            logger.warning(f"YouTube duration lookup failed: {e}")
            durations = {}

        results = []
        for item in items:
            video_id = item["id"]["videoId"]
            snippet = item.get("snippet", {})
            results.append(
                SearchResult(
                    id=video_id,
                    title=snippet.get("title", ""),
                    artist=snippet.get("channelTitle", ""),
                    duration=durations.get(video_id, 0),
                    thumbnail=_best_thumbnail(snippet.get("thumbnails", {})),
                    source=SourceTag.YOUTUBE,
                    external_id=video_id,
                    stream_url=f"https://www.youtube.com/watch?v={video_id}",
                    description=snippet.get("description") or None,
                )
            )

        logger.debug(f"YouTube returned {len(results)} results for '{query}'")
        return results

    async def _get_video_durations(self, video_ids: list[str]) -> dict[str, int]:
        """Fetch durations in seconds for the given videos, in batches."""
        durations: dict[str, int] = {}

        for i in range(0, len(video_ids), DETAILS_BATCH_SIZE):
            batch = video_ids[i : i + DETAILS_BATCH_SIZE]
            data = await self._get_json(
                "/videos",
                {"part": "contentDetails", "id": ",".join(batch), "key": self.credential},
            )
            for item in data.get("items", []):
                raw = item.get("contentDetails", {}).get("duration", "")
                durations[item["id"]] = parse_iso8601_duration(raw)

        return durations


def _best_thumbnail(thumbnails: dict) -> str:
    """Pick the highest-resolution thumbnail available."""
    for size in ("high", "medium", "default"):
        url = thumbnails.get(size, {}).get("url")
        if url:
            return url
    return ""
