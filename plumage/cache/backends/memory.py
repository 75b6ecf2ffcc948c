"""
PlumageCache - In-memory backend.

The default backend of the credentials store. Entries live in an
OrderedDict guarded by an asyncio.Lock, so a ``set`` is visible to the
next ``get``/``delete`` on the same key within one process.

Eviction policies:
- **LRU**: OrderedDict with O(1) access/eviction
- **FIFO**: insertion order, O(1) eviction
- **TTL**: entry closest to expiry is evicted first

A background sweeper drops expired entries; reads also check expiry.
"""

from __future__ import annotations

import asyncio
import fnmatch
import logging
import time
from collections import OrderedDict, defaultdict
from heapq import heappop, heappush
from typing import Any, Dict, List, Optional, Set, Tuple

from ..core import CacheBackend, CacheEntry, CacheStats, EvictionPolicy
from ..faults import CacheConfigFault

logger = logging.getLogger("plumage.cache.memory")


class MemoryBackend(CacheBackend):
    """
    In-memory cache backend with configurable eviction.

    Not shared across processes: pair it with a single-worker host, or
    use ``RedisBackend`` when several workers serve the same sessions.

    Example:
        >>> backend = MemoryBackend(max_size=10000)
        >>> await backend.set("credentials:abc", ("user-1", {}), ttl=1800)
        >>> (await backend.get("credentials:abc")).value
        ('user-1', {})
    """

    __slots__ = (
        "_max_size",
        "_eviction_policy",
        "_store",
        "_lock",
        "_stats",
        "_start_time",
        "_namespace_index",
        "_ttl_heap",
        "_sweeper_task",
        "_sweep_interval",
        "_initialized",
        "_capacity_warning_threshold",
        "_capacity_warned",
    )

    def __init__(
        self,
        max_size: int = 10000,
        eviction_policy: str = "lru",
        sweep_interval: float = 30.0,
        capacity_warning_threshold: float = 0.85,
    ):
        """
        Initialize memory backend.

        Args:
            max_size: Maximum number of entries
            eviction_policy: Eviction strategy ("lru", "fifo", "ttl")
            sweep_interval: Seconds between TTL sweep cycles (0 = no sweeper)
            capacity_warning_threshold: Warn when capacity exceeds this fraction
        """
        if max_size < 1:
            raise CacheConfigFault(f"max_size must be positive, got {max_size}")
        try:
            policy = EvictionPolicy(eviction_policy)
        except ValueError:
            raise CacheConfigFault(f"unknown eviction policy {eviction_policy!r}") from None

        self._max_size = max_size
        self._eviction_policy = policy
        self._sweep_interval = sweep_interval
        self._capacity_warning_threshold = capacity_warning_threshold
        self._capacity_warned = False

        self._store: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = asyncio.Lock()

        self._stats = CacheStats(max_size=max_size, backend="memory")
        self._start_time = time.monotonic()

        # Inverted index: namespace → set of keys
        self._namespace_index: Dict[str, Set[str]] = defaultdict(set)

        # TTL expiry heap: (expires_at, key)
        self._ttl_heap: List[Tuple[float, str]] = []

        self._sweeper_task: Optional[asyncio.Task] = None
        self._initialized = False

    @property
    def name(self) -> str:
        return f"memory:{self._eviction_policy.value}"

    async def initialize(self) -> None:
        """Start the background TTL sweeper."""
        if self._initialized:
            return
        self._start_time = time.monotonic()
        self._initialized = True
        if self._sweep_interval > 0:
            loop = asyncio.get_running_loop()
            self._sweeper_task = loop.create_task(self._ttl_sweeper())

    async def shutdown(self) -> None:
        """Stop sweeper and clear all data."""
        if self._sweeper_task and not self._sweeper_task.done():
            self._sweeper_task.cancel()
            try:
                await self._sweeper_task
            except asyncio.CancelledError:
                pass
        self._sweeper_task = None
        async with self._lock:
            self._store.clear()
            self._namespace_index.clear()
            self._ttl_heap.clear()
            self._stats.size = 0
        self._initialized = False

    async def get(self, key: str) -> Optional[CacheEntry]:
        """O(1) lookup with LRU promotion."""
        async with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._stats.misses += 1
                return None

            if entry.is_expired:
                self._evict_key(key)
                self._stats.misses += 1
                return None

            entry.touch()
            self._stats.hits += 1

            if self._eviction_policy == EvictionPolicy.LRU:
                self._store.move_to_end(key)

            return entry

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[float] = None,
        namespace: str = "default",
    ) -> None:
        """O(1) insert with eviction if at capacity."""
        async with self._lock:
            if key in self._store:
                self._evict_key(key)

            while len(self._store) >= self._max_size:
                self._evict_one()

            expires_at = None
            if ttl is not None and ttl > 0:
                expires_at = time.monotonic() + ttl

            self._store[key] = CacheEntry(
                key=key,
                value=value,
                expires_at=expires_at,
                namespace=namespace,
            )
            self._namespace_index[namespace].add(key)

            # Only the sweeper pops the heap
            if expires_at is not None and self._sweep_interval > 0:
                heappush(self._ttl_heap, (expires_at, key))

            self._stats.sets += 1
            self._stats.size = len(self._store)
            self._check_capacity_warning()

    async def delete(self, key: str, namespace: str = "default") -> bool:
        """O(1) deletion; missing keys are ignored. The entry knows its namespace."""
        async with self._lock:
            if key in self._store:
                self._evict_key(key)
                self._stats.deletes += 1
                return True
            return False

    async def exists(self, key: str) -> bool:
        async with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return False
            if entry.is_expired:
                self._evict_key(key)
                return False
            return True

    async def clear(self, namespace: Optional[str] = None) -> int:
        """Clear all or namespaced entries."""
        async with self._lock:
            if namespace is None:
                count = len(self._store)
                self._store.clear()
                self._namespace_index.clear()
                self._ttl_heap.clear()
                self._stats.size = 0
                return count

            keys_to_remove = list(self._namespace_index.get(namespace, set()))
            for key in keys_to_remove:
                self._evict_key(key)
            return len(keys_to_remove)

    async def keys(self, pattern: str = "*", namespace: Optional[str] = None) -> List[str]:
        """List live keys matching glob pattern."""
        async with self._lock:
            if namespace:
                candidates = list(self._namespace_index.get(namespace, set()))
            else:
                candidates = list(self._store.keys())

            candidates = [k for k in candidates if not self._store[k].is_expired]

            if pattern == "*":
                return candidates

            return [k for k in candidates if fnmatch.fnmatch(k, pattern)]

    async def stats(self) -> CacheStats:
        self._stats.size = len(self._store)
        self._stats.uptime_seconds = time.monotonic() - self._start_time
        return self._stats

    async def health_check(self) -> bool:
        return self._initialized

    # ── Private helpers ──────────────────────────────────────────────

    def _check_capacity_warning(self) -> None:
        """Log a warning if cache is near capacity. Caller must hold lock."""
        ratio = len(self._store) / self._max_size if self._max_size > 0 else 0.0
        if ratio >= self._capacity_warning_threshold and not self._capacity_warned:
            logger.warning(
                f"Cache capacity at {ratio:.0%} ({len(self._store)}/{self._max_size}), "
                f"eviction policy: {self._eviction_policy.value}"
            )
            self._capacity_warned = True
        elif ratio < self._capacity_warning_threshold * 0.9:
            self._capacity_warned = False

    def _evict_key(self, key: str) -> None:
        """Remove a key and clean up indices. Caller must hold lock."""
        entry = self._store.pop(key, None)
        if entry is None:
            return

        ns_set = self._namespace_index.get(entry.namespace)
        if ns_set:
            ns_set.discard(key)
            if not ns_set:
                del self._namespace_index[entry.namespace]

        self._stats.size = len(self._store)

    def _evict_one(self) -> None:
        """Evict one entry based on policy. Caller must hold lock."""
        if not self._store:
            return

        if self._eviction_policy == EvictionPolicy.TTL:
            min_key = None
            min_expires = float("inf")
            for k, entry in self._store.items():
                if entry.expires_at is not None and entry.expires_at < min_expires:
                    min_expires = entry.expires_at
                    min_key = k
            key_to_evict = min_key or next(iter(self._store))
        else:
            # LRU and FIFO: the first item is the oldest by their ordering
            key_to_evict = next(iter(self._store))

        self._evict_key(key_to_evict)
        self._stats.evictions += 1

    async def _ttl_sweeper(self) -> None:
        """Background task to clean expired entries."""
        while True:
            try:
                await asyncio.sleep(self._sweep_interval)
                swept = await self._sweep_expired()
                if swept:
                    logger.debug(f"TTL sweeper removed {swept} expired entries")
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.warning(f"TTL sweep failed: {e}")

    async def _sweep_expired(self) -> int:
        """Remove expired entries using the TTL heap."""
        async with self._lock:
            now = time.monotonic()
            swept = 0

            while self._ttl_heap:
                expires_at, key = self._ttl_heap[0]
                if expires_at > now:
                    break

                heappop(self._ttl_heap)

                # The key may have been rewritten with a later expiry
                entry = self._store.get(key)
                if entry and entry.is_expired:
                    self._evict_key(key)
                    self._stats.evictions += 1
                    swept += 1

            return swept
