"""Integration test fixtures.

Provides a real TrackCatalog backed by in-memory SQLite, seeded with
representative tracks, and a real in-process cache store.
"""

import aiosqlite
import pytest
import pytest_asyncio

import core.dependencies as deps_module
from cache.store import MemoryCacheStore
from catalog.db import TrackCatalog
from config.settings import Settings
from providers.ratelimit import reset_rate_limiting

# ---------------------------------------------------------------------------
# Seed data -- representative catalog rows
# ---------------------------------------------------------------------------

SEED_ARTISTS = [
    (1, "Burna Boy"),
    (2, "Wizkid"),
    (3, "Tems"),
    (4, "Asake"),
]

SEED_TRACKS = [
    (1, "Last Last", 1, "last-last.mp3", 172, "https://img.example.com/1.jpg"),
    (2, "City Boys", 1, "city-boys.mp3", 158, ""),
    (3, "Essence", 2, "essence.mp3", 248, ""),
    (4, "Ojuelegba", 2, "ojuelegba.mp3", 201, ""),
    (5, "Free Mind", 3, "free-mind.mp3", 223, ""),
    (6, "Lonely At The Top", 4, "lonely.mp3", 140, ""),
    (7, "Burning", 3, "burning.mp3", 190, ""),
]


async def _create_schema(conn: aiosqlite.Connection):
    """Create the artists and tracks tables."""
    await conn.execute("CREATE TABLE artists (id INTEGER PRIMARY KEY, name TEXT NOT NULL)")
    await conn.execute("""
        CREATE TABLE tracks (
            id INTEGER PRIMARY KEY,
            title TEXT NOT NULL,
            artist_id INTEGER REFERENCES artists(id),
            file TEXT NOT NULL,
            duration INTEGER,
            thumbnail TEXT
        )
    """)
    await conn.commit()


async def _seed_data(conn: aiosqlite.Connection):
    await conn.executemany("INSERT INTO artists VALUES (?, ?)", SEED_ARTISTS)
    await conn.executemany("INSERT INTO tracks VALUES (?, ?, ?, ?, ?, ?)", SEED_TRACKS)
    await conn.commit()


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def catalog():
    """Real TrackCatalog backed by in-memory SQLite with seed data."""
    db = TrackCatalog()
    conn = await aiosqlite.connect(":memory:")
    conn.row_factory = aiosqlite.Row

    await _create_schema(conn)
    await _seed_data(conn)

    # Bypass connect() path-checking by directly setting the connection
    db._conn = conn

    yield db

    await conn.close()


@pytest.fixture
def cache_store():
    """Real in-process cache store."""
    return MemoryCacheStore(maxsize=1000)


@pytest.fixture
def test_settings():
    """Settings with no real credentials, telemetry disabled."""
    return Settings(
        youtube_api_key=None,
        soundcloud_client_id=None,
        redis_url=None,
        sentry_dsn=None,
        posthog_api_key=None,
        enable_telemetry=False,
        admin_token="integration-token",
        catalog_db_path="test_catalog.db",
    )


@pytest.fixture(autouse=True)
def reset_state():
    deps_module._rate_limiter = None
    deps_module._cache_store = None
    yield
    reset_rate_limiting()
    deps_module._rate_limiter = None
    deps_module._cache_store = None


@pytest_asyncio.fixture
async def app_client(catalog, cache_store, test_settings):
    """httpx AsyncClient with a real catalog and cache but no external providers."""
    from httpx import ASGITransport, AsyncClient

    from config.settings import get_settings
    from core.dependencies import (
        get_cache_store,
        get_catalog,
        get_indexing_service,
        get_posthog_client,
        get_providers,
        get_search_service,
    )
    from indexer.registry import ScraperRegistry
    from indexer.service import IndexingService
    from main import app
    from search.aggregator import Aggregator
    from search.service import SearchService

    search_service = SearchService(Aggregator(catalog, []), cache_store)
    indexing_service = IndexingService(ScraperRegistry(), cache_store)

    app.dependency_overrides[get_catalog] = lambda: catalog
    app.dependency_overrides[get_cache_store] = lambda: cache_store
    app.dependency_overrides[get_providers] = lambda: []
    app.dependency_overrides[get_search_service] = lambda: search_service
    app.dependency_overrides[get_indexing_service] = lambda: indexing_service
    app.dependency_overrides[get_posthog_client] = lambda: None
    app.dependency_overrides[get_settings] = lambda: test_settings

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
