"""
Plumage - Session-based authentication lifecycle for async Python services.

Subsystems:
- plumage.sessions: session manager, credentials store, context, middleware
- plumage.cache: key/value backends with per-entry TTL (memory, Redis)
- plumage.faults: structured fault taxonomy
- plumage.config: layered configuration loading
"""

from .config import ConfigLoader, ConfigError

from .faults import Fault, FaultDomain, Severity

from .sessions import (
    SessionManager,
    SessionConfig,
    SessionContext,
    SessionRecord,
    SessionAuthMiddleware,
    CredentialsStore,
    CredentialsCache,
    SessionFault,
    SessionStoreUnavailableFault,
    SessionStoreCorruptedFault,
    SessionConfigFault,
)

__version__ = "0.1.0"

__all__ = [
    "ConfigLoader",
    "ConfigError",
    "Fault",
    "FaultDomain",
    "Severity",
    "SessionManager",
    "SessionConfig",
    "SessionContext",
    "SessionRecord",
    "SessionAuthMiddleware",
    "CredentialsStore",
    "CredentialsCache",
    "SessionFault",
    "SessionStoreUnavailableFault",
    "SessionStoreCorruptedFault",
    "SessionConfigFault",
    "__version__",
]
