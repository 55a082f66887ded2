"""Unit tests for indexer/router.py."""

from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from config.settings import get_settings
from core.dependencies import get_indexing_service, get_posthog_client
from core.exceptions import NoScraperError, ScraperError, UnsupportedURLError
from tests.factories import make_scraped_metadata
from tests.unit.conftest import override_deps


@pytest.fixture
def mock_indexing_service():
    service = AsyncMock()
    service.index_url = AsyncMock(side_effect=lambda url: make_scraped_metadata(url))
    service.get_indexed_tracks = AsyncMock(return_value=[])
    service.search_indexed_tracks = AsyncMock(return_value=[])
    return service


async def _request(method, path, service, settings, json=None):
    from main import app

    with override_deps(
        app,
        {
            get_indexing_service: service,
            get_posthog_client: None,
            get_settings: settings,
        },
    ):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            return await client.request(method, path, json=json)


class TestIndexUrl:
    @pytest.mark.asyncio
    async def test_indexes(self, mock_indexing_service, mock_settings):
        url = "https://audiomack.com/burna-boy/song/last-last"

        resp = await _request(
            "POST", "/api/v1/indexed", mock_indexing_service, mock_settings, json={"url": url}
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["source_url"] == url
        assert body["source"] == "audiomack"
        mock_indexing_service.index_url.assert_awaited_once_with(url)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error,status",
        [
            (UnsupportedURLError("unsupported URL"), 400),
            (NoScraperError("no scraper for soundcloud"), 400),
            (ScraperError("HTTP 503"), 502),
        ],
    )
    async def test_error_mapping(self, mock_indexing_service, mock_settings, error, status):
        mock_indexing_service.index_url.side_effect = error

        resp = await _request(
            "POST",
            "/api/v1/indexed",
            mock_indexing_service,
            mock_settings,
            json={"url": "https://example.com/x"},
        )

        assert resp.status_code == status
        assert resp.json()["detail"] == error.message

    @pytest.mark.asyncio
    async def test_empty_url_rejected(self, mock_indexing_service, mock_settings):
        resp = await _request(
            "POST", "/api/v1/indexed", mock_indexing_service, mock_settings, json={"url": ""}
        )
        assert resp.status_code == 422
        mock_indexing_service.index_url.assert_not_awaited()


class TestListAndSearch:
    @pytest.mark.asyncio
    async def test_list(self, mock_indexing_service, mock_settings):
        mock_indexing_service.get_indexed_tracks.return_value = [
            make_scraped_metadata("https://audiomack.com/1"),
        ]

        resp = await _request(
            "GET", "/api/v1/indexed/audiomack?limit=5", mock_indexing_service, mock_settings
        )

        assert resp.status_code == 200
        assert len(resp.json()) == 1
        mock_indexing_service.get_indexed_tracks.assert_awaited_once_with("audiomack", 5)

    @pytest.mark.asyncio
    async def test_list_default_limit(self, mock_indexing_service, mock_settings):
        await _request("GET", "/api/v1/indexed/boomplay", mock_indexing_service, mock_settings)
        mock_indexing_service.get_indexed_tracks.assert_awaited_once_with("boomplay", 20)

    @pytest.mark.asyncio
    async def test_search(self, mock_indexing_service, mock_settings):
        mock_indexing_service.search_indexed_tracks.return_value = [
            make_scraped_metadata("https://audiomack.com/3", title="Burning", artist="Tems"),
        ]

        resp = await _request(
            "GET",
            "/api/v1/indexed/audiomack/search?q=burn&limit=3",
            mock_indexing_service,
            mock_settings,
        )

        assert resp.status_code == 200
        assert resp.json()[0]["title"] == "Burning"
        mock_indexing_service.search_indexed_tracks.assert_awaited_once_with(
            "audiomack", "burn", 3
        )

    @pytest.mark.asyncio
    async def test_search_requires_query(self, mock_indexing_service, mock_settings):
        resp = await _request(
            "GET", "/api/v1/indexed/audiomack/search", mock_indexing_service, mock_settings
        )
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_limit_out_of_range(self, mock_indexing_service, mock_settings):
        resp = await _request(
            "GET", "/api/v1/indexed/audiomack?limit=0", mock_indexing_service, mock_settings
        )
        assert resp.status_code == 422
