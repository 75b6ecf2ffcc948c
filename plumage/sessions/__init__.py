"""
PlumageSessions - Session-based authentication lifecycle.

Given a request context carrying an opaque session token, the
SessionManager resolves the authenticated principal, transparently
rotates stale sessions and creates/deletes session records in a
pluggable credentials store.

Principles:
- Tokens are opaque, namespaced and never reused
- A fingerprint identifies one login across every renewal
- Records are replaced wholesale, never patched in place
- Store failures surface as faults, never as "logged out"
"""

from .clock import (
    Clock,
    SystemClock,
    ManualClock,
)

from .identifiers import (
    IdentifierGenerator,
    UUIDGenerator,
)

from .namespace import Namespacer

from .metadata import (
    FINGERPRINT,
    INSERTED_AT,
    SessionRecord,
    MetadataMerger,
    coerce_metadata,
    normalize_record,
)

from .context import SessionContext

from .store import (
    CredentialsStore,
    CredentialsCache,
)

from .config import (
    SessionConfig,
    build_backend,
    build_store,
    DEFAULT_SESSION_KEY,
    DEFAULT_SESSION_TTL_RENEWAL,
)

from .manager import SessionManager

from .middleware import SessionAuthMiddleware

from .faults import (
    SessionFault,
    SessionStoreUnavailableFault,
    SessionStoreCorruptedFault,
    SessionConfigFault,
)

__all__ = [
    # Collaborators
    "Clock",
    "SystemClock",
    "ManualClock",
    "IdentifierGenerator",
    "UUIDGenerator",
    "Namespacer",
    # Records
    "FINGERPRINT",
    "INSERTED_AT",
    "SessionRecord",
    "MetadataMerger",
    "coerce_metadata",
    "normalize_record",
    # Context
    "SessionContext",
    # Storage
    "CredentialsStore",
    "CredentialsCache",
    # Config
    "SessionConfig",
    "build_backend",
    "build_store",
    "DEFAULT_SESSION_KEY",
    "DEFAULT_SESSION_TTL_RENEWAL",
    # Manager
    "SessionManager",
    "SessionAuthMiddleware",
    # Faults
    "SessionFault",
    "SessionStoreUnavailableFault",
    "SessionStoreCorruptedFault",
    "SessionConfigFault",
]
