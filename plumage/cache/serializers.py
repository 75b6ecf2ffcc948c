"""
PlumageCache - Pluggable serializers for cache value encoding.

Used by distributed backends. Session records are 2-tuples, which the
JSON serializer returns as 2-element lists; the credentials store
accepts both shapes.
"""

from __future__ import annotations

import json
import logging
import pickle
from typing import Any

logger = logging.getLogger("plumage.cache.serializers")


class JsonCacheSerializer:
    """
    JSON serializer - safe, human-readable, cross-language.
    
    Default serializer. Principals stored through it must be
    JSON-compatible (dicts, strings, numbers).
    """
    
    def serialize(self, value: Any) -> bytes:
        """Serialize value to JSON bytes."""
        try:
            return json.dumps(value, default=str, ensure_ascii=False).encode("utf-8")
        except (TypeError, ValueError, OverflowError) as e:
            logger.warning(f"JSON serialization failed: {e}")
            raise
    
    def deserialize(self, data: bytes) -> Any:
        """Deserialize JSON bytes to value."""
        try:
            return json.loads(data.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"JSON deserialization failed: {e}")
            raise


class PickleCacheSerializer:
    """
    Pickle serializer - supports arbitrary Python principals.
    
    WARNING: Only use with a trusted store. Pickle can execute
    arbitrary code during deserialization.
    """
    
    def serialize(self, value: Any) -> bytes:
        try:
            return pickle.dumps(value, protocol=pickle.HIGHEST_PROTOCOL)
        except (pickle.PicklingError, TypeError, AttributeError) as e:
            logger.warning(f"Pickle serialization failed: {e}")
            raise
    
    def deserialize(self, data: bytes) -> Any:
        try:
            return pickle.loads(data)
        except (pickle.UnpicklingError, EOFError) as e:
            logger.warning(f"Pickle deserialization failed: {e}")
            raise


def get_serializer(name: str = "json"):
    """
    Factory for serializer instances.
    
    Args:
        name: "json" or "pickle"
    """
    serializers = {
        "json": JsonCacheSerializer,
        "pickle": PickleCacheSerializer,
    }
    
    cls = serializers.get(name)
    if cls is None:
        raise ValueError(f"Unknown serializer: {name}. Options: {list(serializers.keys())}")
    
    return cls()
