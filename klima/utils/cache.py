"""
Redis cache for choropleth payloads.

A choropleth for one (indicator, year, period) is large and only changes
when the dataset is reloaded, so the serialized response is kept in Redis
when ``REDIS_ENABLED`` is set. Every Redis failure is logged and treated as
a cache miss; the API never fails because of the cache.

Keys look like ``klima:choropleth:tavg:2015:m7``. A metadata refresh clears
everything under ``klima:choropleth:*``.
"""

import json
from typing import Any, Dict, Optional

import redis
from redis.exceptions import RedisError

from klima.config import settings
from klima.utils.logging_config import get_logger

logger = get_logger(__name__)

KEY_PREFIX = "klima"


class RedisCache:
    """
    JSON payload cache backed by Redis.

    Constructed disabled unless asked to connect. A failed connection
    leaves the instance disabled rather than raising.
    """

    def __init__(self, enabled: bool = settings.REDIS_ENABLED):
        self.client: Optional[redis.Redis] = None
        self.enabled = False
        if enabled:
            self.connect()

    def connect(self) -> bool:
        """Open the Redis connection; returns whether caching is now active."""
        client = redis.Redis(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            db=settings.REDIS_DB,
            password=settings.REDIS_PASSWORD or None,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )
        try:
            client.ping()
        except RedisError as e:
            logger.warning(
                f"Redis at {settings.REDIS_HOST}:{settings.REDIS_PORT} unreachable ({e}); "
                f"choropleths will not be cached"
            )
            return False

        self.client = client
        self.enabled = True
        logger.info(f"Choropleth cache on Redis {settings.REDIS_HOST}:{settings.REDIS_PORT}")
        return True

    @property
    def active(self) -> bool:
        return self.enabled and self.client is not None

    def get(self, key: str) -> Optional[Any]:
        """
        Look up a cached payload.

        Returns:
            The decoded payload, or None on a miss, a disabled cache or any error
        """
        if not self.active:
            return None

        try:
            raw = self.client.get(key)
        except RedisError as e:
            logger.error(f"Cache read failed for '{key}': {e}")
            return None

        if raw is None:
            logger.debug(f"Cache miss {key}")
            return None
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Discarding undecodable cache entry '{key}': {e}")
            return None
        logger.debug(f"Cache hit {key}")
        return payload

    def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        """
        Store a payload for ``ttl`` seconds.

        Payloads containing NaN or Infinity are refused, so a cached
        response is always valid JSON.

        Returns:
            True when stored
        """
        if not self.active:
            return False

        try:
            encoded = json.dumps(value, allow_nan=False)
        except (TypeError, ValueError) as e:
            logger.error(f"Payload for '{key}' is not cacheable: {e}")
            return False

        try:
            self.client.setex(key, ttl, encoded)
        except RedisError as e:
            logger.error(f"Cache write failed for '{key}': {e}")
            return False
        logger.debug(f"Cached {key} for {ttl}s")
        return True

    def clear_pattern(self, pattern: str) -> int:
        """
        Delete every key matching a glob pattern.

        Returns:
            Number of keys removed
        """
        if not self.active:
            return 0

        try:
            keys = list(self.client.scan_iter(match=pattern))
            removed = self.client.delete(*keys) if keys else 0
        except RedisError as e:
            logger.error(f"Cache clear failed for '{pattern}': {e}")
            return 0
        logger.info(f"Cleared {removed} cached entries matching '{pattern}'")
        return removed

    def health_check(self) -> Dict[str, str]:
        """Cache status for the /health endpoint."""
        if not self.active:
            return {"status": "disabled", "message": "Redis caching is not enabled"}
        try:
            self.client.ping()
        except RedisError as e:
            return {"status": "unhealthy", "error": str(e)}
        return {"status": "healthy"}


# Global cache instance
cache = RedisCache()


def make_cache_key(*parts: Any) -> str:
    """
    Join key parts under the application prefix.

    Example:
        >>> make_cache_key("choropleth", "tavg", 2015, "m7")
        'klima:choropleth:tavg:2015:m7'
    """
    return ":".join([KEY_PREFIX, *(str(part) for part in parts)])


def choropleth_cache_key(indicator: str, year: int, period_code: str) -> str:
    return make_cache_key("choropleth", indicator, year, period_code)


CHOROPLETH_PATTERN = make_cache_key("choropleth", "*")
