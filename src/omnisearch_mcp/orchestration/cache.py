"""Result caching keyed by provider, capability and canonical parameters."""

from __future__ import annotations

import hashlib
import json
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from collections.abc import Callable, Mapping
from typing import Any

import redis.asyncio as aioredis
from pydantic import TypeAdapter, ValidationError

from ..core.config import CacheConfig
from ..core.logger import get_logger
from .base import Capability, NormalizedResult

logger = get_logger("orchestration.cache")

_RESULT_ADAPTER: TypeAdapter[NormalizedResult] = TypeAdapter(NormalizedResult)

# Parameters that select a provider rather than shape the request
_NON_KEY_PARAMETERS = frozenset({"provider"})


def canonicalize_parameters(parameters: Mapping[str, Any]) -> dict[str, Any]:
    """Reduce parameters to a canonical form for cache keying.

    Unset values and provider selectors are dropped, text queries are
    lower-cased and trimmed, and list values keep their order.
    """
    canonical: dict[str, Any] = {}
    for key, value in parameters.items():
        if value is None or key in _NON_KEY_PARAMETERS:
            continue
        if key == "query" and isinstance(value, str):
            value = value.lower().strip()
        elif isinstance(value, tuple):
            value = list(value)
        canonical[key] = value
    return canonical


def make_cache_key(identity: str, capability: Capability, parameters: Mapping[str, Any]) -> str:
    """Create a cache key from provider identity, capability and parameters.

    Returns:
        Hex digest; equal for calls whose canonical parameters are equal
    """
    key_data = {
        "provider": identity,
        "capability": capability.value,
        "parameters": canonicalize_parameters(parameters),
    }
    key_str = json.dumps(key_data, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(key_str.encode()).hexdigest()[:32]


class ResultCache(ABC):
    """Abstract result cache.

    Only successful, normalized results are stored. Implementations must be
    safe for concurrent use from one event loop.
    """

    @abstractmethod
    async def get(self, key: str) -> NormalizedResult | None:
        """Return the live entry for ``key``, or None."""

    @abstractmethod
    async def put(self, key: str, result: NormalizedResult, ttl_seconds: float) -> None:
        """Store ``result`` under ``key`` for ``ttl_seconds``."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove an entry; return whether it existed."""

    @abstractmethod
    async def clear(self) -> int:
        """Drop every entry; return how many were removed."""

    @abstractmethod
    def get_stats(self) -> dict[str, Any]:
        """Get cache statistics."""

    async def close(self) -> None:  # noqa: B027
        """Release backend resources."""


class MemoryResultCache(ResultCache):
    """In-process cache with TTL and bounded size.

    Expired entries are removed lazily on read and before eviction; when the
    cache is full the oldest-inserted entry is evicted first.
    """

    def __init__(
        self,
        max_entries: int = 10000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize memory cache.

        Args:
            max_entries: Maximum number of cached entries
            clock: Monotonic clock in seconds
        """
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self._entries: OrderedDict[str, tuple[NormalizedResult, float]] = OrderedDict()
        self._max_entries = max_entries
        self._clock = clock
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        logger.info("MemoryResultCache initialized (max_entries=%d)", max_entries)

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> NormalizedResult | None:
        entry = self._entries.get(key)
        if entry is not None:
            result, expires_at = entry
            if self._clock() < expires_at:
                self._hits += 1
                return result
            del self._entries[key]
            logger.debug("Cache entry expired: %s", key)

        self._misses += 1
        return None

    async def put(self, key: str, result: NormalizedResult, ttl_seconds: float) -> None:
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self._max_entries:
            self._evict()
        self._entries[key] = (result, self._clock() + ttl_seconds)

    def _evict(self) -> None:
        now = self._clock()
        expired = [key for key, (_, expires_at) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]
        while len(self._entries) >= self._max_entries:
            oldest, _ = self._entries.popitem(last=False)
            self._evictions += 1
            logger.debug("Evicted oldest cache entry: %s", oldest)

    async def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def clear(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        logger.info("Cleared %d cache entries", count)
        return count

    def get_stats(self) -> dict[str, Any]:
        total = self._hits + self._misses
        return {
            "backend": "memory",
            "size": len(self._entries),
            "max_entries": self._max_entries,
            "hits": self._hits,
            "misses": self._misses,
            "evictions": self._evictions,
            "hit_rate": self._hits / total if total > 0 else 0.0,
        }


class RedisResultCache(ResultCache):
    """Redis-backed cache; entries expire server-side via ``SET ... PX``."""

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        key_prefix: str = "omnisearch",
        client: Any = None,
    ) -> None:
        """Initialize Redis cache.

        Args:
            redis_url: Redis connection URL
            key_prefix: Namespace for cache keys
            client: Pre-built async client (mainly for tests)
        """
        self.redis_url = redis_url
        self.key_prefix = key_prefix
        self._client = client
        self._hits = 0
        self._misses = 0
        self._errors = 0

    def _client_or_connect(self) -> Any:
        if self._client is None:
            self._client = aioredis.from_url(self.redis_url, decode_responses=True)
            logger.info("Connected Redis result cache at %s", self.redis_url)
        return self._client

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}:cache:{key}"

    async def get(self, key: str) -> NormalizedResult | None:
        client = self._client_or_connect()
        try:
            raw = await client.get(self._key(key))
        except aioredis.RedisError as exc:
            self._record_error("read", exc)
            self._misses += 1
            return None

        if raw is None:
            self._misses += 1
            return None
        try:
            result = _RESULT_ADAPTER.validate_json(raw)
        except ValidationError:
            logger.warning("Dropping corrupt cache entry: %s", key)
            try:
                await client.delete(self._key(key))
            except aioredis.RedisError as exc:
                self._record_error("delete", exc)
            self._misses += 1
            return None
        self._hits += 1
        return result

    async def put(self, key: str, result: NormalizedResult, ttl_seconds: float) -> None:
        client = self._client_or_connect()
        data = _RESULT_ADAPTER.dump_json(result, exclude_none=True).decode()
        # Millisecond TTL; fractional seconds are kept
        ttl_ms = max(1, int(ttl_seconds * 1000))
        try:
            await client.set(self._key(key), data, px=ttl_ms)
        except aioredis.RedisError as exc:
            self._record_error("write", exc)

    async def delete(self, key: str) -> bool:
        client = self._client_or_connect()
        try:
            return bool(await client.delete(self._key(key)))
        except aioredis.RedisError as exc:
            self._record_error("delete", exc)
            return False

    async def clear(self) -> int:
        client = self._client_or_connect()
        try:
            keys = [key async for key in client.scan_iter(match=self._key("*"))]
            if not keys:
                return 0
            return int(await client.delete(*keys))
        except aioredis.RedisError as exc:
            self._record_error("clear", exc)
            return 0

    def _record_error(self, operation: str, exc: Exception) -> None:
        self._errors += 1
        logger.warning("Redis cache %s failed: %s", operation, exc)

    def get_stats(self) -> dict[str, Any]:
        total = self._hits + self._misses
        return {
            "backend": "redis",
            "hits": self._hits,
            "misses": self._misses,
            "errors": self._errors,
            "hit_rate": self._hits / total if total > 0 else 0.0,
        }

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def build_cache(config: CacheConfig) -> ResultCache | None:
    """Create the configured cache backend (None when caching is disabled)."""
    if not config.enabled:
        logger.info("Result caching disabled")
        return None
    if config.backend == "redis":
        return RedisResultCache(config.redis_url, key_prefix=config.key_prefix)
    return MemoryResultCache(max_entries=config.max_entries)
