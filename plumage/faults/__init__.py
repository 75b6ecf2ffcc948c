"""
PlumageFaults - Structured fault handling.

Errors in Plumage are typed fault signals carrying a stable code,
a domain, a severity and retry semantics.
"""

from .core import (
    DOMAIN_DEFAULTS,
    Fault,
    FaultDomain,
    Severity,
)

__all__ = [
    "DOMAIN_DEFAULTS",
    "Fault",
    "FaultDomain",
    "Severity",
]
