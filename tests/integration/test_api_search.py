"""Integration tests for the search API against a real catalog and cache."""

from unittest.mock import AsyncMock, patch

import pytest

from ratelimit.limiter import FixedWindowRateLimiter

pytestmark = pytest.mark.integration


class TestSearchEndpoint:
    @pytest.mark.asyncio
    async def test_finds_local_tracks_by_title(self, app_client):
        resp = await app_client.get("/api/v1/search", params={"q": "Last Last"})

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["query"] == "last last"
        assert data["total_count"] == 1
        result = data["results"][0]
        assert result["title"] == "Last Last"
        assert result["artist"] == "Burna Boy"
        assert result["source"] == "local"
        assert result["stream_url"] == "/api/v1/serve/last-last.mp3"

    @pytest.mark.asyncio
    async def test_title_and_artist_matches_are_merged(self, app_client):
        """'burn' matches Burna Boy's tracks by artist and 'Burning' by title."""
        resp = await app_client.get("/api/v1/search", params={"q": "burn"})

        titles = {r["title"] for r in resp.json()["data"]["results"]}
        assert titles == {"Burning", "Last Last", "City Boys"}

    @pytest.mark.asyncio
    async def test_no_duplicate_ids(self, app_client):
        resp = await app_client.get("/api/v1/search", params={"q": "burn"})
        ids = [r["id"] for r in resp.json()["data"]["results"]]
        assert len(ids) == len(set(ids))

    @pytest.mark.asyncio
    async def test_second_call_is_cached(self, app_client):
        first = await app_client.get("/api/v1/search", params={"q": "Wizkid"})
        second = await app_client.get("/api/v1/search", params={"q": "  wizkid  "})

        assert first.json()["data"]["cached_at"] is None
        assert second.json()["data"]["cached_at"] is not None
        assert second.json()["data"]["results"] == first.json()["data"]["results"]

    @pytest.mark.asyncio
    async def test_cache_status_reflects_search(self, app_client):
        before = await app_client.get("/api/v1/search/cache-status", params={"q": "tems"})
        await app_client.get("/api/v1/search", params={"q": "Tems"})
        after = await app_client.get("/api/v1/search/cache-status", params={"q": "tems"})

        assert before.json()["cached"] is False
        assert after.json()["cached"] is True
        assert 0 < after.json()["ttl_seconds"] <= 86400

    @pytest.mark.asyncio
    async def test_max_results_truncates(self, app_client):
        resp = await app_client.get("/api/v1/search", params={"q": "burn", "max_results": 2})
        assert resp.json()["data"]["total_count"] == 2

    @pytest.mark.asyncio
    async def test_no_matches(self, app_client):
        resp = await app_client.get("/api/v1/search", params={"q": "davido"})
        assert resp.status_code == 200
        assert resp.json()["data"]["results"] == []

    @pytest.mark.asyncio
    async def test_local_only(self, app_client):
        resp = await app_client.get("/api/v1/search", params={"q": "essence", "source": "local"})
        data = resp.json()["data"]
        assert data["source"] == "local"
        assert [r["title"] for r in data["results"]] == ["Essence"]

    @pytest.mark.asyncio
    async def test_blank_query_rejected(self, app_client):
        resp = await app_client.get("/api/v1/search", params={"q": "   "})
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_source_rejected(self, app_client):
        resp = await app_client.get("/api/v1/search", params={"q": "x", "source": "napster"})
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_unconfigured_provider(self, app_client):
        resp = await app_client.get("/api/v1/search", params={"q": "x", "source": "youtube"})
        assert resp.status_code == 503


class TestAdminCacheInvalidation:
    @pytest.mark.asyncio
    async def test_invalidate_forces_fresh_search(self, app_client):
        await app_client.get("/api/v1/search", params={"q": "asake"})

        resp = await app_client.delete(
            "/admin/search-cache",
            params={"q": "asake"},
            headers={"Authorization": "Bearer integration-token"},
        )
        after = await app_client.get("/api/v1/search", params={"q": "asake"})

        assert resp.status_code == 200
        assert after.json()["data"]["cached_at"] is None


class TestRateLimiting:
    @pytest.mark.asyncio
    async def test_rejects_once_window_is_used(self, app_client, cache_store):
        limiter = FixedWindowRateLimiter(cache_store, max_requests=3, window=60)

        with patch("core.dependencies.get_rate_limiter", AsyncMock(return_value=limiter)):
            statuses = [
                (await app_client.get("/api/v1/search", params={"q": "tems"})).status_code
                for _ in range(5)
            ]

        assert statuses == [200, 200, 200, 429, 429]

    @pytest.mark.asyncio
    async def test_reset_readmits_client(self, app_client, cache_store):
        limiter = FixedWindowRateLimiter(cache_store, max_requests=2, window=60)

        with patch("core.dependencies.get_rate_limiter", AsyncMock(return_value=limiter)):
            for _ in range(2):
                await app_client.get("/api/v1/search", params={"q": "tems"})
            blocked = await app_client.get("/api/v1/search", params={"q": "tems"})

            status = await limiter.get_status("ip:127.0.0.1")
            await limiter.reset("ip:127.0.0.1")
            readmitted = await app_client.get("/api/v1/search", params={"q": "tems"})

        assert blocked.status_code == 429
        assert status.requests >= 2
        assert readmitted.status_code == 200
