"""HTTP middleware enforcing the per-client rate limit."""

import logging
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from core import metrics
from ratelimit.limiter import FixedWindowRateLimiter, RateLimitResult, get_client_identifier

logger = logging.getLogger(__name__)

EXEMPT_PATHS = frozenset({"/health", "/metrics"})


def _set_headers(response: Response, result: RateLimitResult) -> None:
    response.headers["X-RateLimit-Limit"] = str(result.limit)
    response.headers["X-RateLimit-Remaining"] = str(result.remaining)
    response.headers["X-RateLimit-Reset"] = str(int(result.reset_at.timestamp()))


def rate_limit_middleware(
    get_limiter: Callable[[], Awaitable[FixedWindowRateLimiter | None]],
) -> Callable[[Request, Callable[[Request], Awaitable[Response]]], Awaitable[Response]]:
    """Build an http middleware that admits or rejects each request.

    Args:
        get_limiter: Returns the limiter to use, or None when rate limiting is disabled

    Returns:
        Middleware function suitable for app.middleware("http")
    """

    async def middleware(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        if request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        limiter = await get_limiter()
        if limiter is None:
            return await call_next(request)

        result = await limiter.check_limit(get_client_identifier(request))

        if not result.allowed:
            metrics.record_rate_limit_exceeded(limiter.limit_type)
            response: Response = JSONResponse(
                status_code=429,
                content={"error": "rate limit exceeded", "retry_after": result.retry_after},
            )
            response.headers["Retry-After"] = str(result.retry_after)
            _set_headers(response, result)
            return response

        response = await call_next(request)
        _set_headers(response, result)
        return response

    return middleware
