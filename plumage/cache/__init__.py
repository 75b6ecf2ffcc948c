"""
PlumageCache - Key/value backends with per-entry TTL.

The credentials store persists session records through one of these
backends:
- MemoryBackend: in-process, the default
- RedisBackend: shared between workers
"""

from .core import (
    CacheBackend,
    CacheEntry,
    CacheStats,
    EvictionPolicy,
)

from .backends import (
    MemoryBackend,
    RedisBackend,
)

from .faults import (
    CacheFault,
    CacheConnectionFault,
    CacheSerializationFault,
    CacheBackendFault,
    CacheConfigFault,
)

from .serializers import (
    JsonCacheSerializer,
    PickleCacheSerializer,
    get_serializer,
)

__all__ = [
    # Core
    "CacheBackend",
    "CacheEntry",
    "CacheStats",
    "EvictionPolicy",
    # Backends
    "MemoryBackend",
    "RedisBackend",
    # Faults
    "CacheFault",
    "CacheConnectionFault",
    "CacheSerializationFault",
    "CacheBackendFault",
    "CacheConfigFault",
    # Serializers
    "JsonCacheSerializer",
    "PickleCacheSerializer",
    "get_serializer",
]
