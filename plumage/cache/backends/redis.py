"""
PlumageCache - Redis backend for credentials shared between workers.

Uses redis-py's asyncio client with:
- Connection pooling
- Millisecond-precision TTLs (``PX``)
- Namespace index via Redis sets
- Pluggable serialization (JSON by default)

Errors are raised as ``CacheBackendFault`` rather than treated as misses.
"""

from __future__ import annotations

import fnmatch
import logging
import time
from typing import Any, List, Optional

from ..core import CacheBackend, CacheEntry, CacheStats
from ..faults import CacheBackendFault, CacheConnectionFault, CacheSerializationFault

logger = logging.getLogger("plumage.cache.redis")


class RedisBackend(CacheBackend):
    """
    Redis-backed cache using redis-py async.

    Example:
        >>> backend = RedisBackend(url="redis://localhost:6379/0", key_prefix="myapp:")
        >>> await backend.initialize()
    """

    __slots__ = (
        "_url",
        "_max_connections",
        "_socket_timeout",
        "_connect_timeout",
        "_retry_on_timeout",
        "_key_prefix",
        "_serializer",
        "_redis",
        "_stats",
        "_start_time",
        "_initialized",
    )

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        max_connections: int = 10,
        socket_timeout: float = 5.0,
        connect_timeout: float = 5.0,
        retry_on_timeout: bool = True,
        key_prefix: str = "plumage:",
        serializer: Optional[Any] = None,
        client: Optional[Any] = None,
    ):
        """
        Args:
            url: Redis connection URL
            key_prefix: Prefix applied to every key written by this backend
            serializer: Object with ``serialize``/``deserialize`` (JSON if None)
            client: Pre-built ``redis.asyncio.Redis`` client; skips ``from_url``
        """
        self._url = url
        self._max_connections = max_connections
        self._socket_timeout = socket_timeout
        self._connect_timeout = connect_timeout
        self._retry_on_timeout = retry_on_timeout
        self._key_prefix = key_prefix
        self._redis = client
        self._stats = CacheStats(backend="redis")
        self._start_time = time.monotonic()
        self._initialized = False

        if serializer is None:
            from ..serializers import JsonCacheSerializer
            self._serializer = JsonCacheSerializer()
        else:
            self._serializer = serializer

    @property
    def name(self) -> str:
        return "redis"

    @property
    def is_distributed(self) -> bool:
        return True

    async def initialize(self) -> None:
        """Connect to Redis and verify the connection."""
        if self._initialized:
            return

        if self._redis is None:
            import redis.asyncio as aioredis

            self._redis = aioredis.from_url(
                self._url,
                max_connections=self._max_connections,
                socket_timeout=self._socket_timeout,
                socket_connect_timeout=self._connect_timeout,
                retry_on_timeout=self._retry_on_timeout,
                decode_responses=False,  # We handle serialization
            )

        try:
            await self._redis.ping()
        except Exception as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise CacheConnectionFault(backend="redis", reason=str(e)) from e

        self._start_time = time.monotonic()
        self._initialized = True
        logger.info(f"Redis cache connected: {self._url}")

    async def shutdown(self) -> None:
        """Close the Redis connection pool."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
        self._initialized = False

    def _full_key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    def _ns_set_key(self, namespace: str) -> str:
        return f"{self._key_prefix}_ns:{namespace}"

    def _client(self, operation: str) -> Any:
        if self._redis is None:
            raise CacheBackendFault(backend="redis", operation=operation, reason="not initialized")
        return self._redis

    def _failed(self, operation: str, key: str, error: Exception) -> CacheBackendFault:
        logger.error(f"Redis {operation} error for key '{key}': {error}")
        self._stats.errors += 1
        return CacheBackendFault(backend="redis", operation=operation, reason=str(error))

    async def get(self, key: str) -> Optional[CacheEntry]:
        redis = self._client("get")
        full_key = self._full_key(key)

        try:
            raw = await redis.get(full_key)
        except Exception as e:
            raise self._failed("get", key, e) from e

        if raw is None:
            self._stats.misses += 1
            return None

        try:
            value = self._serializer.deserialize(raw)
        except Exception as e:
            self._stats.errors += 1
            raise CacheSerializationFault(key=key, operation="deserialize", reason=str(e)) from e

        self._stats.hits += 1
        return CacheEntry(key=key, value=value)

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[float] = None,
        namespace: str = "default",
    ) -> None:
        redis = self._client("set")
        full_key = self._full_key(key)

        try:
            serialized = self._serializer.serialize(value)
        except Exception as e:
            self._stats.errors += 1
            raise CacheSerializationFault(key=key, operation="serialize", reason=str(e)) from e

        try:
            pipe = redis.pipeline()
            if ttl and ttl > 0:
                pipe.set(full_key, serialized, px=max(1, int(ttl * 1000)))
            else:
                pipe.set(full_key, serialized)
            pipe.sadd(self._ns_set_key(namespace), full_key)
            await pipe.execute()
        except Exception as e:
            raise self._failed("set", key, e) from e

        self._stats.sets += 1

    async def delete(self, key: str, namespace: str = "default") -> bool:
        """Delete the key and drop it from its namespace set."""
        redis = self._client("delete")
        full_key = self._full_key(key)

        try:
            pipe = redis.pipeline()
            pipe.delete(full_key)
            pipe.srem(self._ns_set_key(namespace), full_key)
            result, _ = await pipe.execute()
        except Exception as e:
            raise self._failed("delete", key, e) from e

        if result:
            self._stats.deletes += 1
            return True
        return False

    async def exists(self, key: str) -> bool:
        redis = self._client("exists")
        try:
            return bool(await redis.exists(self._full_key(key)))
        except Exception as e:
            raise self._failed("exists", key, e) from e

    async def clear(self, namespace: Optional[str] = None) -> int:
        redis = self._client("clear")

        try:
            if namespace:
                ns_key = self._ns_set_key(namespace)
                members = await redis.smembers(ns_key)
                if not members:
                    return 0
                pipe = redis.pipeline()
                for member in members:
                    pipe.delete(member)
                pipe.delete(ns_key)
                await pipe.execute()
                return len(members)

            count = 0
            cursor = 0
            while True:
                cursor, batch = await redis.scan(
                    cursor=cursor,
                    match=f"{self._key_prefix}*",
                    count=1000,
                )
                if batch:
                    await redis.delete(*batch)
                    count += len(batch)
                if cursor == 0:
                    break
            return count
        except Exception as e:
            raise self._failed("clear", namespace or "*", e) from e

    async def keys(self, pattern: str = "*", namespace: Optional[str] = None) -> List[str]:
        """
        List keys in a namespace.

        The namespace set may still reference keys Redis has expired, so
        members are filtered by existence.
        """
        redis = self._client("keys")
        prefix_len = len(self._key_prefix)

        try:
            if namespace:
                members = await redis.smembers(self._ns_set_key(namespace))
                raw_keys = [m.decode("utf-8") if isinstance(m, bytes) else m for m in members]
                keys = []
                stale = []
                for full_key in raw_keys:
                    if await redis.exists(full_key):
                        keys.append(full_key[prefix_len:])
                    else:
                        stale.append(full_key)
                if stale:
                    await redis.srem(self._ns_set_key(namespace), *stale)
            else:
                keys = []
                cursor = 0
                while True:
                    cursor, batch = await redis.scan(
                        cursor=cursor,
                        match=f"{self._key_prefix}{pattern}",
                        count=1000,
                    )
                    for k in batch:
                        s = k.decode("utf-8") if isinstance(k, bytes) else k
                        if not s.startswith(f"{self._key_prefix}_ns:"):
                            keys.append(s[prefix_len:])
                    if cursor == 0:
                        break
        except Exception as e:
            raise self._failed("keys", pattern, e) from e

        if pattern != "*":
            keys = [k for k in keys if fnmatch.fnmatch(k, pattern)]
        return keys

    async def stats(self) -> CacheStats:
        self._stats.uptime_seconds = time.monotonic() - self._start_time
        return self._stats

    async def health_check(self) -> bool:
        """Check if Redis is reachable."""
        if self._redis is None:
            return False
        try:
            await self._redis.ping()
            return True
        except Exception:
            return False
