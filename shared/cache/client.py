"""Key/value cache client for PetPro services.

Wraps Redis with get/set/delete/exists/keys/expire. The cache is an
optimization, never a correctness dependency: every operation swallows
store failures, logs a warning, and returns a safe default. Rate-limit
checks fail open.

Usage:
    from shared.cache import CacheClient

    cache = CacheClient()
    await cache.connect()
    await cache.set("vendor:42", {"name": "Paws"}, ttl=300)
    vendor = await cache.get("vendor:42")
    await cache.close()
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import redis.asyncio as aioredis

from shared.config.service_config import ServiceConfig

logger = logging.getLogger(__name__)

RESPONSE_CACHE_PREFIX = "cache:"


def _encode(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, default=str)


def _decode(raw: Optional[str]) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except (ValueError, TypeError):
        return raw


class CacheClient:
    """Fail-open Redis key/value client.

    A pre-built ``redis.asyncio`` client may be passed in; otherwise one is
    created from ``redis_url`` on connect().
    """

    def __init__(self, redis_url: Optional[str] = None, *, client: Any = None):
        self._redis_url = redis_url or ServiceConfig.REDIS_URL
        self._redis = client
        self._connected = False

    async def connect(self) -> bool:
        """Connect to Redis. Returns True if successful."""
        try:
            if self._redis is None:
                self._redis = aioredis.from_url(
                    self._redis_url,
                    decode_responses=True,
                    socket_connect_timeout=2.0,
                )
            await self._redis.ping()
            self._connected = True
            logger.info("CacheClient connected to Redis at %s", self._redis_url)
            return True
        except Exception as e:
            logger.warning("Failed to connect to Redis: %s (running without cache)", e)
            self._connected = False
            return False

    async def close(self) -> None:
        if self._redis is not None:
            try:
                await self._redis.aclose()
            except Exception as e:
                logger.warning("Error closing Redis connection: %s", e)
            self._redis = None
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected and self._redis is not None

    # ------------------------------------------------------------------
    # Basic operations
    # ------------------------------------------------------------------

    async def get(self, key: str) -> Any:
        """Return the stored value (JSON-decoded when possible) or None."""
        if not self.is_connected:
            return None
        try:
            raw = await self._redis.get(key)
        except Exception as e:
            logger.warning("Redis GET failed for key %s: %s", key, e)
            return None
        return _decode(raw)

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Store a value, optionally expiring after ``ttl`` seconds.

        A ``ttl`` of zero or less means the value is already expired: any
        existing entry is removed and nothing is stored.
        """
        if not self.is_connected:
            return False
        if ttl is not None and ttl <= 0:
            return await self.delete(key)
        try:
            if ttl is not None:
                await self._redis.setex(key, ttl, _encode(value))
            else:
                await self._redis.set(key, _encode(value))
            return True
        except Exception as e:
            logger.warning("Redis SET failed for key %s: %s", key, e)
            return False

    async def delete(self, key: str) -> bool:
        if not self.is_connected:
            return False
        try:
            await self._redis.delete(key)
            return True
        except Exception as e:
            logger.warning("Redis DEL failed for key %s: %s", key, e)
            return False

    async def exists(self, key: str) -> bool:
        if not self.is_connected:
            return False
        try:
            return bool(await self._redis.exists(key))
        except Exception as e:
            logger.warning("Redis EXISTS failed for key %s: %s", key, e)
            return False

    async def keys(self, pattern: str) -> list[str]:
        """Keys matching a glob pattern such as 'service:*'."""
        if not self.is_connected:
            return []
        try:
            return list(await self._redis.keys(pattern))
        except Exception as e:
            logger.warning("Redis KEYS failed for pattern %s: %s", pattern, e)
            return []

    async def expire(self, key: str, ttl: int) -> bool:
        if not self.is_connected:
            return False
        try:
            return bool(await self._redis.expire(key, ttl))
        except Exception as e:
            logger.warning("Redis EXPIRE failed for key %s: %s", key, e)
            return False

    async def incr(self, key: str) -> Optional[int]:
        if not self.is_connected:
            return None
        try:
            return int(await self._redis.incr(key))
        except Exception as e:
            logger.warning("Redis INCR failed for key %s: %s", key, e)
            return None

    # ------------------------------------------------------------------
    # Counters and rate limiting
    # ------------------------------------------------------------------

    async def increment_counter(self, key: str, ttl: int = 60) -> Optional[int]:
        """Increment a counter and (re)set its expiry in one transaction."""
        if not self.is_connected:
            return None
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.incr(key)
                pipe.expire(key, ttl)
                results = await pipe.execute()
            return int(results[0])
        except Exception as e:
            logger.warning("Redis counter increment failed for key %s: %s", key, e)
            return None

    async def check_rate_limit(self, key: str, limit: int, window_s: int) -> bool:
        """Return True if the caller identified by ``key`` is within ``limit``.

        The window starts at the first hit. Any store failure allows the call.
        """
        if not self.is_connected:
            return True
        try:
            current = int(await self._redis.incr(key))
            if current == 1:
                await self._redis.expire(key, window_s)
            return current <= limit
        except Exception as e:
            logger.warning("Rate limit check failed for key %s: %s", key, e)
            return True

    # ------------------------------------------------------------------
    # Response cache
    # ------------------------------------------------------------------

    async def cache_response(self, key: str, response: Any, ttl: int = 300) -> bool:
        return await self.set(f"{RESPONSE_CACHE_PREFIX}{key}", response, ttl)

    async def get_cached_response(self, key: str) -> Any:
        return await self.get(f"{RESPONSE_CACHE_PREFIX}{key}")
