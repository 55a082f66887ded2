"""Unit test fixtures."""

from contextlib import contextmanager
from unittest.mock import AsyncMock, Mock

import pytest

import core.dependencies as deps_module
from config.settings import Settings
from providers.ratelimit import reset_rate_limiting


@contextmanager
def override_deps(app, overrides):
    """Set FastAPI dependency overrides and clear them on exit.

    Args:
        app: The FastAPI application.
        overrides: A dict mapping dependency functions to their replacement values.
    """

    def _make_override(val):
        return lambda: val

    for dep_fn, provider in overrides.items():
        app.dependency_overrides[dep_fn] = _make_override(provider)
    try:
        yield app
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def mock_settings(monkeypatch):
    """Settings with safe test defaults (no real credentials/DSNs)."""
    monkeypatch.setenv("YOUTUBE_API_KEY", "")
    monkeypatch.setenv("SOUNDCLOUD_CLIENT_ID", "")
    monkeypatch.setenv("REDIS_URL", "")
    monkeypatch.setenv("SENTRY_DSN", "")
    monkeypatch.setenv("POSTHOG_API_KEY", "")
    monkeypatch.setenv("ENABLE_TELEMETRY", "false")
    return Settings(
        youtube_api_key=None,
        soundcloud_client_id=None,
        redis_url=None,
        sentry_dsn=None,
        posthog_api_key=None,
        enable_telemetry=False,
        catalog_db_path="test_catalog.db",
    )


@pytest.fixture
def mock_search_service():
    """Mock SearchService."""
    service = AsyncMock()
    service.search = AsyncMock()
    service.invalidate_cache = AsyncMock()
    service.get_cache_status = AsyncMock()
    return service


@pytest.fixture
def mock_posthog_client():
    """Mock PostHog client."""
    client = Mock()
    client.capture = Mock()
    client.flush = Mock()
    client.shutdown = Mock()
    return client


@pytest.fixture(autouse=True)
def reset_state():
    """Clear rate limiting state, dependency singletons and ContextVars between tests."""
    from core.telemetry import _cache_stats_var

    cache_stats_token = _cache_stats_var.set(None)
    deps_module._rate_limiter = None
    deps_module._cache_store = None
    yield
    reset_rate_limiting()
    deps_module._rate_limiter = None
    deps_module._cache_store = None
    _cache_stats_var.reset(cache_stats_token)
