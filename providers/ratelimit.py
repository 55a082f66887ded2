"""Outbound rate limiting for provider API requests.

Implements, per provider:
- Semaphore for concurrent request limiting
- Token bucket rate limiter for requests per minute
- Reset function for testing
"""

import asyncio
import logging

from aiolimiter import AsyncLimiter

from config.settings import get_settings

logger = logging.getLogger(__name__)

# Lazily-initialized rate limiting primitives, stored per (event loop, provider)
_rate_limiters: dict[tuple[asyncio.AbstractEventLoop, str], AsyncLimiter] = {}
_semaphores: dict[tuple[asyncio.AbstractEventLoop, str], asyncio.Semaphore] = {}


def get_rate_limiter(provider: str) -> AsyncLimiter:
    """Get or create the rate limiter for a provider on the current event loop.

    Args:
        provider: Provider name ("youtube", "soundcloud")

    Returns:
        AsyncLimiter configured for requests per minute
    """
    settings = get_settings()
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return AsyncLimiter(settings.provider_rate_limit, 60)

    key = (loop, provider)
    if key not in _rate_limiters:
        _rate_limiters[key] = AsyncLimiter(settings.provider_rate_limit, 60)
        logger.debug(f"Created {provider} rate limiter: {settings.provider_rate_limit} req/min")
    return _rate_limiters[key]


def get_semaphore(provider: str) -> asyncio.Semaphore:
    """Get or create the concurrency semaphore for a provider on the current event loop.

    Args:
        provider: Provider name ("youtube", "soundcloud")

    Returns:
        asyncio.Semaphore for limiting concurrent requests
    """
    settings = get_settings()
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.Semaphore(settings.provider_max_concurrent)

    key = (loop, provider)
    if key not in _semaphores:
        _semaphores[key] = asyncio.Semaphore(settings.provider_max_concurrent)
        logger.debug(f"Created {provider} semaphore: {settings.provider_max_concurrent} concurrent")
    return _semaphores[key]


def reset_rate_limiting() -> None:
    """Reset rate limiting state for testing."""
    _rate_limiters.clear()
    _semaphores.clear()
    logger.debug("Reset provider rate limiting state")
