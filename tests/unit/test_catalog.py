"""Unit tests for catalog/models.py and catalog/db.py."""

from pathlib import Path

import pytest

from catalog.db import TrackCatalog
from tests.factories import make_catalog_track


class TestCatalogTrack:
    def test_stream_url_points_at_serve_endpoint(self):
        track = make_catalog_track(file="abc.mp3")
        assert track.stream_url == "/api/v1/serve/abc.mp3"

    def test_stream_url_in_dump(self):
        track = make_catalog_track(file="abc.mp3")
        assert track.model_dump()["stream_url"] == "/api/v1/serve/abc.mp3"


class TestTrackCatalogConnection:
    @pytest.mark.asyncio
    async def test_connect_missing_file_raises(self, tmp_path):
        catalog = TrackCatalog(db_path=tmp_path / "missing.db")
        with pytest.raises(FileNotFoundError):
            await catalog.connect()

    @pytest.mark.asyncio
    async def test_unconnected_is_unavailable(self):
        catalog = TrackCatalog(db_path=Path("unused.db"))
        assert await catalog.is_available() is False

    @pytest.mark.asyncio
    async def test_unconnected_lookup_raises(self):
        catalog = TrackCatalog(db_path=Path("unused.db"))
        with pytest.raises(RuntimeError):
            await catalog.find_by_title("anything")

    @pytest.mark.asyncio
    async def test_close_without_connection(self):
        catalog = TrackCatalog(db_path=Path("unused.db"))
        await catalog.close()  # Should not raise

    @pytest.mark.asyncio
    async def test_connect_and_close(self, tmp_path):
        db_file = tmp_path / "catalog.db"
        db_file.touch()
        catalog = TrackCatalog(db_path=db_file)
        await catalog.connect()
        assert await catalog.is_available() is True
        await catalog.close()
        assert await catalog.is_available() is False
