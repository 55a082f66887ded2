"""SoundCloud API client."""

import logging

from providers.base import ProviderClient
from search.models import SearchResult, SourceTag

logger = logging.getLogger(__name__)

SOUNDCLOUD_API_BASE = "https://api-v2.soundcloud.com"
DEFAULT_ARTWORK = "https://a-v2.sndcdn.com/assets/images/default/cover-large.png"


def upgrade_artwork_url(url: str) -> str:
    """Swap SoundCloud's default small artwork for the 500x500 variant."""
    return url.replace("-large.", "-t500x500.")


class SoundCloudClient(ProviderClient):
    """Searches SoundCloud tracks, keeping only streamable ones."""

    name = SourceTag.SOUNDCLOUD
    base_url = SOUNDCLOUD_API_BASE

    async def search(self, query: str, max_results: int) -> list[SearchResult]:
        """Search SoundCloud for streamable tracks.

        Args:
            query: Normalized search query
            max_results: Maximum number of results

        Returns:
            List of SearchResult tagged "soundcloud"
        """
        self._require_configured()

        data = await self._get_json(
            "/search/tracks",
            {
                "q": query,
                "client_id": self.credential,
                "limit": max_results,
                "linked_partitioning": 1,
            },
        )

        results = []
        for track in data.get("collection", []):
            if not track.get("streamable"):
                continue
            results.append(self._to_result(track))
            if len(results) >= max_results:
                break

        logger.debug(f"SoundCloud returned {len(results)} results for '{query}'")
        return results

    def _to_result(self, track: dict) -> SearchResult:
        track_id = str(track["id"])
        artwork = track.get("artwork_url")
        return SearchResult(
            id=track_id,
            title=track.get("title", ""),
            artist=track.get("user", {}).get("username", ""),
            duration=int(track.get("duration") or 0) // 1000,
            thumbnail=upgrade_artwork_url(artwork) if artwork else DEFAULT_ARTWORK,
            source=SourceTag.SOUNDCLOUD,
            external_id=track_id,
            stream_url=track.get("permalink_url", ""),
            description=track.get("description") or None,
        )
