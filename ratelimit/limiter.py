"""Fixed-window per-client rate limiting on top of the cache store.

Each client gets a counter under ratelimit:<identifier> that expires one window
after its first request. Because windows are fixed, a client can be admitted
up to twice the limit across a window boundary.
"""

import logging
from datetime import UTC, datetime, timedelta

from fastapi import Request
from pydantic import BaseModel

from cache.store import CacheStore
from core.exceptions import CacheError

logger = logging.getLogger(__name__)

KEY_PREFIX = "ratelimit"
DEFAULT_MAX_REQUESTS = 100
DEFAULT_WINDOW = 60

STREAM_MAX_REQUESTS = 50
STREAM_WINDOW = 60


class RateLimitResult(BaseModel):
    """Outcome of a single rate limit check."""

    allowed: bool
    limit: int
    remaining: int
    reset_at: datetime
    retry_after: int = 0  # seconds until the window resets, set when rejected


class RateLimitStatus(BaseModel):
    """Current usage for one client, without consuming a request."""

    requests: int
    limit: int
    remaining: int
    reset_at: datetime


def get_client_identifier(request: Request) -> str:
    """Identify the caller: authenticated user id if present, else client IP."""
    user_id = getattr(request.state, "user_id", None)
    if user_id is not None:
        return f"user:{user_id}"
    host = request.client.host if request.client else "unknown"
    return f"ip:{host}"


class FixedWindowRateLimiter:
    """Counts requests per client in fixed windows stored in a CacheStore."""

    def __init__(
        self,
        cache: CacheStore,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window: int = DEFAULT_WINDOW,
        limit_type: str = "api",
    ):
        """Initialize the limiter.

        Args:
            cache: Store holding the counters
            max_requests: Requests admitted per window
            window: Window length in seconds
            limit_type: Label used for the rate-limit-exceeded metric
        """
        self.cache = cache
        self.max_requests = max_requests or DEFAULT_MAX_REQUESTS
        self.window = window or DEFAULT_WINDOW
        self.limit_type = limit_type

    @staticmethod
    def _key(identifier: str) -> str:
        return f"{KEY_PREFIX}:{identifier}"

    async def _remaining_ttl(self, key: str) -> float:
        """TTL of the counter, or the full window if it cannot be read."""
        try:
            ttl = await self.cache.ttl(key)
        except CacheError:
            return float(self.window)
        return ttl if ttl >= 0 else float(self.window)

    async def check_limit(self, identifier: str) -> RateLimitResult:
        """Count one request for identifier and decide whether to admit it.

        Store failures fail open: the request is admitted with a full quota.
        """
        key = self._key(identifier)
        now = datetime.now(UTC)

        try:
            count = await self.cache.incr(key)
        except CacheError as e:
            logger.warning(f"Rate limit check failed for {identifier}, allowing request: {e}")
            return RateLimitResult(
                allowed=True,
                limit=self.max_requests,
                remaining=self.max_requests,
                reset_at=now + timedelta(seconds=self.window),
            )

        if count == 1:
            try:
                await self.cache.expire(key, self.window)
            except CacheError as e:
                logger.warning(f"Failed to set rate limit window for {identifier}: {e}")

        ttl = await self._remaining_ttl(key)
        reset_at = now + timedelta(seconds=ttl)

        if count > self.max_requests:
            logger.info(f"Rate limit exceeded for {identifier} ({count}/{self.max_requests})")
            return RateLimitResult(
                allowed=False,
                limit=self.max_requests,
                remaining=0,
                reset_at=reset_at,
                retry_after=max(int(ttl), 1),
            )

        return RateLimitResult(
            allowed=True,
            limit=self.max_requests,
            remaining=max(self.max_requests - count, 0),
            reset_at=reset_at,
        )

    async def get_status(self, identifier: str) -> RateLimitStatus:
        """Report current usage for identifier without counting a request."""
        key = self._key(identifier)
        now = datetime.now(UTC)

        try:
            raw = await self.cache.get_string(key)
        except CacheError as e:
            logger.warning(f"Rate limit status lookup failed for {identifier}: {e}")
            raw = None

        if raw is not None:
            try:
                count = int(raw)
            except ValueError:
                logger.warning(f"Rate limit counter for {identifier} is not an integer: {raw!r}")
                raw = None

        if raw is None:
            return RateLimitStatus(
                requests=0,
                limit=self.max_requests,
                remaining=self.max_requests,
                reset_at=now + timedelta(seconds=self.window),
            )

        ttl = await self._remaining_ttl(key)
        return RateLimitStatus(
            requests=count,
            limit=self.max_requests,
            remaining=max(self.max_requests - count, 0),
            reset_at=now + timedelta(seconds=ttl),
        )

    async def reset(self, identifier: str) -> None:
        """Clear the counter for identifier."""
        await self.cache.delete(self._key(identifier))
        logger.info(f"Rate limit reset for {identifier}")


def create_stream_rate_limiter(cache: CacheStore) -> FixedWindowRateLimiter:
    """Limiter preset for streaming endpoints: 50 requests per minute."""
    return FixedWindowRateLimiter(
        cache, max_requests=STREAM_MAX_REQUESTS, window=STREAM_WINDOW, limit_type="stream"
    )
