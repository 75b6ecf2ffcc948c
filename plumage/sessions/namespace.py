"""
PlumageSessions - Namespacing.

Applications sharing one physical credentials store keep their tokens
and transport field names apart by prefixing them with the application
name.
"""

from __future__ import annotations

NAMESPACE_DELIMITER = "_"


class Namespacer:
    """
    Prefixes values with a configured namespace.
    
    Example:
        >>> Namespacer("my_app").prepend("auth")
        'my_app_auth'
        >>> Namespacer(None).prepend("auth")
        'auth'
    """
    
    __slots__ = ("namespace",)
    
    def __init__(self, namespace: str | None = None):
        self.namespace = namespace or None
    
    def prepend(self, value: str) -> str:
        if self.namespace is None:
            return value
        return f"{self.namespace}{NAMESPACE_DELIMITER}{value}"
    
    def __repr__(self) -> str:
        return f"Namespacer({self.namespace!r})"
