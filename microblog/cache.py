"""
Best-effort cache manager
Wraps a Redis client; every failure is logged and absorbed so that a cache
outage only costs latency, never correctness.
"""
import asyncio
import logging
from typing import Optional, Union

from redis.asyncio import Redis

from .metrics import CACHE_ERRORS

logger = logging.getLogger(__name__)

DEFAULT_TTL = 3600  # 1 hour
CACHE_OP_TIMEOUT = 1.0  # seconds


class CacheManager:
    """
    Cache operations over an already-connected Redis client.
    A None client means caching is disabled: writes are skipped and reads miss.
    """

    def __init__(self, client: Optional[Redis], default_ttl: int = DEFAULT_TTL,
                 op_timeout: float = CACHE_OP_TIMEOUT):
        self.client = client
        self.default_ttl = default_ttl
        self.op_timeout = op_timeout

    def _make_key(self, key: str, prefix: str = "") -> str:
        """Generate cache key with prefix"""
        if prefix:
            return f"{prefix}:{key}"
        return key

    async def set(self, key: str, value: Union[str, bytes], ttl: int = None, prefix: str = "") -> bool:
        """Set cache value with TTL"""
        if self.client is None:
            return False

        cache_key = self._make_key(key, prefix)
        ttl = ttl or self.default_ttl

        try:
            await asyncio.wait_for(self.client.set(cache_key, value, ex=ttl), self.op_timeout)
            return True
        except Exception as e:
            CACHE_ERRORS.labels(operation="set").inc()
            logger.error(f"Cache set failed for key {cache_key}: {e!r}")
            return False

    async def get(self, key: str, prefix: str = "") -> Optional[bytes]:
        """Get cache value, None on miss or failure"""
        if self.client is None:
            return None

        cache_key = self._make_key(key, prefix)

        try:
            value = await asyncio.wait_for(self.client.get(cache_key), self.op_timeout)
        except Exception as e:
            CACHE_ERRORS.labels(operation="get").inc()
            logger.error(f"Cache get failed for key {cache_key}: {e!r}")
            return None

        if isinstance(value, str):
            return value.encode()
        return value

    async def delete(self, key: str, prefix: str = "") -> bool:
        """Delete cache key"""
        if self.client is None:
            return False

        cache_key = self._make_key(key, prefix)

        try:
            result = await asyncio.wait_for(self.client.delete(cache_key), self.op_timeout)
            return result > 0
        except Exception as e:
            CACHE_ERRORS.labels(operation="delete").inc()
            logger.error(f"Cache delete failed for key {cache_key}: {e!r}")
            return False

    async def ping(self) -> bool:
        """Check that the cache answers"""
        if self.client is None:
            return False

        try:
            return bool(await asyncio.wait_for(self.client.ping(), self.op_timeout))
        except Exception as e:
            CACHE_ERRORS.labels(operation="ping").inc()
            logger.error(f"Cache ping failed: {e!r}")
            return False
