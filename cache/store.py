"""Key-value cache stores used by search, rate limiting and indexing.

Two implementations share the CacheStore contract:
- RedisCacheStore: the shared store for multi-process deployments
- MemoryCacheStore: an in-process store for single-instance runs and tests

Values written with set() are JSON-encoded, so anything pydantic can serialize
round-trips. TTLs are in seconds; ttl() follows Redis conventions and returns
-2 for a missing key and -1 for a key without expiry.
"""

import json
import logging
import math
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, NamedTuple

from cachetools import TLRUCache  # type: ignore[import-untyped]
from pydantic_core import to_jsonable_python
from redis import asyncio as aioredis
from redis.exceptions import RedisError

from core.exceptions import CacheError

logger = logging.getLogger(__name__)

TTL_MISSING = -2.0
TTL_PERSISTENT = -1.0


def encode_value(value: Any) -> str:
    """Serialize a value (pydantic models included) to a JSON string."""
    return json.dumps(to_jsonable_python(value))


class CacheStore(ABC):
    """Contract for the key-value store behind every cache in the service.

    Every method may raise CacheError on a transport failure; callers treat
    such failures as soft and degrade.
    """

    @abstractmethod
    async def get_string(self, key: str) -> str | None:
        """Return the raw value for key, or None if it does not exist."""

    @abstractmethod
    async def set_string(self, key: str, value: str, ttl: float | None = None) -> None:
        """Store a raw value, optionally expiring after ttl seconds."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove key if present."""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check whether key is present and unexpired."""

    @abstractmethod
    async def expire(self, key: str, ttl: float) -> bool:
        """Set a key's expiry. Returns False when the key does not exist."""

    @abstractmethod
    async def ttl(self, key: str) -> float:
        """Remaining time to live in seconds (-2 missing, -1 no expiry)."""

    @abstractmethod
    async def incr(self, key: str) -> int:
        """Atomically increment an integer counter, creating it at 1."""

    @abstractmethod
    async def is_available(self) -> bool:
        """Check if the store is reachable."""

    async def close(self) -> None:
        """Release any connections held by the store."""

    async def get(self, key: str) -> Any | None:
        """Return the JSON-decoded value for key, or None if it does not exist."""
        raw = await self.get_string(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise CacheError(f"Corrupt cache value for {key}: {e}") from e

    async def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """JSON-encode value and store it under key."""
        try:
            encoded = encode_value(value)
        except (TypeError, ValueError) as e:
            raise CacheError(f"Cannot encode cache value for {key}: {e}") from e
        await self.set_string(key, encoded, ttl)


class RedisCacheStore(CacheStore):
    """CacheStore backed by Redis via redis.asyncio."""

    def __init__(self, url: str, client: aioredis.Redis | None = None):
        """Initialize the store.

        Args:
            url: Redis connection URL (e.g. redis://localhost:6379/0)
            client: Optional pre-built client (used by tests)
        """
        self.url = url
        self._client = client or aioredis.Redis.from_url(url, decode_responses=True)

    async def _call(self, op: str, *args, **kwargs) -> Any:
        try:
            return await getattr(self._client, op)(*args, **kwargs)
        except RedisError as e:
            logger.warning(f"Redis {op} failed: {e}")
            raise CacheError(f"Redis {op} failed: {e}", {"op": op}) from e

    async def get_string(self, key: str) -> str | None:
        return await self._call("get", key)

    async def set_string(self, key: str, value: str, ttl: float | None = None) -> None:
        if ttl is not None and ttl > 0:
            await self._call("set", key, value, px=int(ttl * 1000))
        else:
            await self._call("set", key, value)

    async def delete(self, key: str) -> None:
        await self._call("delete", key)

    async def exists(self, key: str) -> bool:
        return bool(await self._call("exists", key))

    async def expire(self, key: str, ttl: float) -> bool:
        return bool(await self._call("pexpire", key, int(ttl * 1000)))

    async def ttl(self, key: str) -> float:
        remaining_ms = await self._call("pttl", key)
        if remaining_ms < 0:
            return float(remaining_ms)
        return remaining_ms / 1000

    async def incr(self, key: str) -> int:
        return int(await self._call("incr", key))

    async def is_available(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError as e:
            logger.warning(f"Redis health check failed: {e}")
            return False

    async def close(self) -> None:
        await self._client.aclose()


class _Entry(NamedTuple):
    value: str | int
    expires_at: float


def _entry_expiry(_key: str, entry: _Entry, _now: float) -> float:
    return entry.expires_at


class MemoryCacheStore(CacheStore):
    """In-process CacheStore on a cachetools TLRUCache with per-key expiry.

    Operations never yield to the event loop, so incr() is atomic within a
    single process.
    """

    def __init__(self, maxsize: int = 10000, timer: Callable[[], float] = time.monotonic):
        self._cache = TLRUCache(maxsize=maxsize, ttu=_entry_expiry, timer=timer)

    def _now(self) -> float:
        return self._cache.timer()

    def _expiry(self, ttl: float | None) -> float:
        if ttl is None or ttl <= 0:
            return math.inf
        return self._now() + ttl

    async def get_string(self, key: str) -> str | None:
        entry = self._cache.get(key)
        if entry is None:
            return None
        return str(entry.value)

    async def set_string(self, key: str, value: str, ttl: float | None = None) -> None:
        self._cache[key] = _Entry(value, self._expiry(ttl))

    async def delete(self, key: str) -> None:
        self._cache.pop(key, None)

    async def exists(self, key: str) -> bool:
        return self._cache.get(key) is not None

    async def expire(self, key: str, ttl: float) -> bool:
        entry = self._cache.get(key)
        if entry is None:
            return False
        self._cache[key] = entry._replace(expires_at=self._expiry(ttl))
        return True

    async def ttl(self, key: str) -> float:
        entry = self._cache.get(key)
        if entry is None:
            return TTL_MISSING
        if entry.expires_at == math.inf:
            return TTL_PERSISTENT
        return max(entry.expires_at - self._now(), 0.0)

    async def incr(self, key: str) -> int:
        entry = self._cache.get(key)
        if entry is None:
            self._cache[key] = _Entry(1, math.inf)
            return 1
        try:
            count = int(entry.value) + 1
        except ValueError as e:
            raise CacheError(f"Value at {key} is not an integer") from e
        self._cache[key] = entry._replace(value=count)
        return count

    async def is_available(self) -> bool:
        return True

    def clear(self) -> None:
        """Drop every entry."""
        self._cache.clear()


def create_cache_store(redis_url: str | None, maxsize: int = 10000) -> CacheStore:
    """Build the configured store: Redis when a URL is given, in-process otherwise."""
    if redis_url:
        logger.info("Using Redis cache store")
        return RedisCacheStore(redis_url)
    logger.info(f"REDIS_URL not set - using in-process cache store (maxsize={maxsize})")
    return MemoryCacheStore(maxsize=maxsize)
