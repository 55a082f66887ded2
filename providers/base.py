"""Shared HTTP plumbing for external catalog providers."""

import asyncio
import logging
import time
from abc import ABC, abstractmethod

import httpx

from config.settings import get_settings
from core.exceptions import ProviderError
from core.sentry import add_breadcrumb
from core.telemetry import record_provider_call
from providers.ratelimit import get_rate_limiter, get_semaphore
from search.models import SearchResult, SourceTag

logger = logging.getLogger(__name__)

USER_AGENT = "AuxstreamSearchService/1.0"

# Query parameters carrying credentials, kept out of breadcrumbs
SECRET_PARAMS = frozenset({"key", "client_id"})


class ProviderClient(ABC):
    """Base class for a provider API client.

    Subclasses know only their own wire format: they build request params and
    convert the provider's payload into SearchResult objects.
    """

    name: SourceTag
    base_url: str

    def __init__(self, credential: str | None, timeout: float | None = None):
        """Initialize the client.

        Args:
            credential: API key or client ID; a client without one is unconfigured
            timeout: HTTP timeout in seconds (defaults to settings)
        """
        self.credential = credential or ""
        self.timeout = timeout if timeout is not None else get_settings().provider_timeout
        self._client: httpx.AsyncClient | None = None

    @property
    def is_configured(self) -> bool:
        """Whether the client has the credentials it needs to be queried."""
        return bool(self.credential)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"User-Agent": USER_AGENT},
                timeout=self.timeout,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request_with_retry(
        self,
        method: str,
        path: str,
        params: dict | None = None,
        max_retries: int | None = None,
    ) -> httpx.Response:
        """Make an HTTP request with rate limiting and retry on 429.

        Args:
            method: HTTP method (GET, POST, etc.)
            path: API path relative to base_url (e.g., "/search")
            params: Optional query parameters
            max_retries: Max retry attempts on 429 (defaults to settings)

        Returns:
            httpx.Response with status 200

        Raises:
            ProviderError: On transport errors, non-200 responses, or exhausted retries
        """
        if max_retries is None:
            max_retries = get_settings().provider_max_retries

        client = await self._get_client()
        semaphore = get_semaphore(self.name)
        rate_limiter = get_rate_limiter(self.name)

        async with semaphore:
            for attempt in range(max_retries + 1):
                await rate_limiter.acquire()

                start = time.perf_counter()
                try:
                    response = await client.request(method, path, params=params)
                except httpx.RequestError as e:
                    logger.error(f"{self.name} request failed: {e}")
                    raise ProviderError(f"{self.name} request failed: {e}") from e
                finally:
                    record_provider_call((time.perf_counter() - start) * 1000)

                if response.status_code == 429:
                    if attempt < max_retries:
                        # Exponential backoff: 1s, 2s, 4s...
                        delay = 2**attempt
                        logger.warning(
                            f"{self.name} rate limit hit, retrying in {delay}s "
                            f"(attempt {attempt + 1}/{max_retries + 1})"
                        )
                        await asyncio.sleep(delay)
                        continue
                    raise ProviderError(f"{self.name} rate limit hit, max retries exhausted")

                if response.status_code != 200:
                    raise ProviderError(
                        f"{self.name} API error: status {response.status_code}",
                        {"status": response.status_code, "body": response.text[:500]},
                    )

                return response

        raise ProviderError(f"{self.name} request was not attempted")

    async def _get_json(self, path: str, params: dict) -> dict:
        safe_params = {k: v for k, v in params.items() if k not in SECRET_PARAMS}
        add_breadcrumb(self.name, path, {"params": safe_params})
        response = await self._request_with_retry("GET", path, params=params)
        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(f"{self.name} returned invalid JSON: {e}") from e

    async def check_api(self) -> bool:
        """Check provider API connectivity with a minimal query."""
        if not self.is_configured:
            return False
        try:
            await self.search("test", 1)
            return True
        except Exception:
            return False

    @abstractmethod
    async def search(self, query: str, max_results: int) -> list[SearchResult]:
        """Search the provider and return normalized results.

        Raises:
            ProviderError: If the provider is unconfigured or the call fails
        """

    def _require_configured(self) -> None:
        if not self.is_configured:
            raise ProviderError(f"{self.name} credentials not configured")
