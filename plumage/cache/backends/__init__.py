"""
PlumageCache Backends - Storage implementations.
"""

from .memory import MemoryBackend
from .redis import RedisBackend

__all__ = [
    "MemoryBackend",
    "RedisBackend",
]
