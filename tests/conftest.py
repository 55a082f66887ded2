"""Shared test fixtures for pytest."""

from unittest.mock import AsyncMock, Mock

import pytest

from cache.store import MemoryCacheStore
from search.models import SourceTag
from tests.factories import make_catalog_track


class FakeClock:
    """Manually advanced timer for TTL tests."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_store(clock):
    """In-process cache store driven by a fake clock."""
    return MemoryCacheStore(maxsize=1000, timer=clock)


@pytest.fixture
def mock_catalog():
    """Create a mock track catalog."""
    catalog = AsyncMock()
    catalog.find_by_title = AsyncMock(return_value=[])
    catalog.find_by_artist = AsyncMock(return_value=[])
    catalog.connect = AsyncMock()
    catalog.close = AsyncMock()
    catalog.is_available = AsyncMock(return_value=True)
    return catalog


def make_mock_provider(name: SourceTag, results=None, configured=True):
    """Mock ProviderClient returning fixed results."""
    provider = Mock()
    provider.name = name
    provider.is_configured = configured
    provider.search = AsyncMock(return_value=results or [])
    provider.check_api = AsyncMock(return_value=True)
    provider.close = AsyncMock()
    return provider


@pytest.fixture
def sample_catalog_tracks():
    """Two local tracks by the same artist."""
    return [
        make_catalog_track(id="1", title="Last Last"),
        make_catalog_track(id="2", title="City Boys"),
    ]
