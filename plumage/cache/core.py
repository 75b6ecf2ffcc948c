"""
PlumageCache - Core types and the backend contract.

The credentials store keeps session records in a cache backend; this
module defines what a backend must provide.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


# ============================================================================
# Eviction Policies
# ============================================================================

class EvictionPolicy(str, Enum):
    """Cache eviction strategies."""
    LRU = "lru"       # Least Recently Used
    TTL = "ttl"       # Closest to expiry first
    FIFO = "fifo"     # First In First Out


# ============================================================================
# Cache Entry
# ============================================================================

@dataclass(slots=True)
class CacheEntry:
    """
    Single cache entry with metadata.
    
    ``expires_at`` is on the ``time.monotonic()`` clock.
    """
    key: str
    value: Any
    created_at: float = field(default_factory=time.monotonic)
    expires_at: Optional[float] = None
    last_accessed: float = field(default_factory=time.monotonic)
    access_count: int = 0
    namespace: str = "default"
    
    @property
    def is_expired(self) -> bool:
        """Check if entry has expired."""
        if self.expires_at is None:
            return False
        return time.monotonic() >= self.expires_at
    
    @property
    def ttl_remaining(self) -> Optional[float]:
        """Remaining TTL in seconds, or None if no expiry."""
        if self.expires_at is None:
            return None
        return max(0.0, self.expires_at - time.monotonic())
    
    def touch(self) -> None:
        """Update access metadata."""
        self.last_accessed = time.monotonic()
        self.access_count += 1
    
    def __repr__(self) -> str:
        ttl = f", ttl={self.ttl_remaining:.1f}s" if self.ttl_remaining else ""
        return f"<CacheEntry key={self.key!r} ns={self.namespace!r} hits={self.access_count}{ttl}>"


# ============================================================================
# Cache Stats
# ============================================================================

@dataclass
class CacheStats:
    """Aggregate cache statistics for observability."""
    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    evictions: int = 0
    errors: int = 0
    size: int = 0
    max_size: int = 0
    backend: str = "unknown"
    uptime_seconds: float = 0.0
    
    @property
    def hit_rate(self) -> float:
        """Cache hit rate as a percentage."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return (self.hits / total) * 100.0
    
    def to_dict(self) -> Dict[str, Any]:
        """Serialize for diagnostics."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "deletes": self.deletes,
            "evictions": self.evictions,
            "errors": self.errors,
            "hit_rate": round(self.hit_rate, 2),
            "size": self.size,
            "max_size": self.max_size,
            "backend": self.backend,
            "uptime_seconds": round(self.uptime_seconds, 2),
        }


# ============================================================================
# Cache Backend Contract
# ============================================================================

class CacheBackend(ABC):
    """
    Abstract cache backend - defines the storage contract.
    
    Backends own their eviction and TTL enforcement. Failures are raised
    as ``CacheFault`` subclasses, never swallowed: a session lookup that
    silently misses would log the user out instead of reporting an outage.
    """
    
    @abstractmethod
    async def initialize(self) -> None:
        """Initialize backend resources (connection pools, sweepers)."""
        ...
    
    @abstractmethod
    async def shutdown(self) -> None:
        """Clean up backend resources."""
        ...
    
    @abstractmethod
    async def get(self, key: str) -> Optional[CacheEntry]:
        """
        Retrieve entry by key.
        
        Returns None if key doesn't exist or has expired.
        """
        ...
    
    @abstractmethod
    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[float] = None,
        namespace: str = "default",
    ) -> None:
        """
        Store a value with optional TTL.
        
        Args:
            key: Cache key
            value: Value to store
            ttl: Time-to-live in seconds (None = no expiry)
            namespace: Logical namespace
        """
        ...
    
    @abstractmethod
    async def delete(self, key: str, namespace: str = "default") -> bool:
        """
        Delete entry by key.
        
        ``namespace`` must match the one the key was set in, so backends
        that index namespaces can drop the key from the index.
        Returns True if the key existed. Deleting a missing key is not an error.
        """
        ...
    
    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check if key exists and is not expired."""
        ...
    
    @abstractmethod
    async def clear(self, namespace: Optional[str] = None) -> int:
        """
        Clear cache entries, optionally only those of one namespace.
        
        Returns:
            Number of entries cleared.
        """
        ...
    
    @abstractmethod
    async def keys(self, pattern: str = "*", namespace: Optional[str] = None) -> List[str]:
        """List keys matching a glob pattern, optionally within a namespace."""
        ...
    
    @abstractmethod
    async def stats(self) -> CacheStats:
        """Get backend statistics."""
        ...
    
    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name for diagnostics."""
        ...
    
    @property
    def is_distributed(self) -> bool:
        """Whether this backend is shared between processes."""
        return False
