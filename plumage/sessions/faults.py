"""
PlumageSessions - Fault definitions.

Session errors are structured Faults, not bare exceptions. A missing
token or a token unknown to the store is NOT a fault: it simply yields
no principal.
"""

import hashlib

from plumage.faults.core import Fault, Severity, FaultDomain


def hash_token(token: str) -> str:
    """Digest a session token for logs and fault metadata."""
    return f"sha256:{hashlib.sha256(token.encode()).hexdigest()[:16]}"


# ============================================================================
# Session Fault Base
# ============================================================================

class SessionFault(Fault):
    """
    Base class for session-related faults.
    
    Session faults live in the SECURITY domain: callers treat them as
    "cannot establish session", never as "not authenticated".
    """
    
    domain = FaultDomain.SECURITY


# ============================================================================
# Storage Faults
# ============================================================================

class SessionStoreUnavailableFault(SessionFault):
    """
    Credentials store is unavailable.
    
    Raised for backend I/O errors, connection failures and serialization
    failures. Not retried by the session manager.
    """
    
    code = "SESSION_STORE_UNAVAILABLE"
    message = "Session storage unavailable"
    severity = Severity.ERROR
    public = False
    retryable = True
    
    def __init__(
        self,
        store_name: str,
        cause: str | None = None,
        operation: str | None = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.store_name = store_name
        self.cause = cause
        self.operation = operation
        if cause:
            self.message = f"Session store '{store_name}' unavailable: {cause}"
        else:
            self.message = f"Session store '{store_name}' unavailable"
        self.args = (self.message,)
        self.metadata.update({"store": store_name, "operation": operation})


class SessionStoreCorruptedFault(SessionFault):
    """
    Session record in store is structurally invalid.
    
    Neither a ``(principal, metadata)`` pair nor the legacy
    ``(principal, timestamp)`` form.
    """
    
    code = "SESSION_STORE_CORRUPTED"
    message = "Session data corrupted"
    severity = Severity.ERROR
    public = False
    retryable = False
    
    def __init__(self, token: str | None = None, reason: str | None = None, **kwargs):
        super().__init__(**kwargs)
        self.token_hash = hash_token(token) if token else None
        self.reason = reason
        if reason:
            self.message = f"Session data corrupted: {reason}"
            self.args = (self.message,)


# ============================================================================
# Configuration Faults
# ============================================================================

class SessionConfigFault(SessionFault):
    """Session configuration is invalid (bad option, unknown selector)."""
    
    code = "SESSION_CONFIG_INVALID"
    message = "Invalid session configuration"
    domain = FaultDomain.CONFIG
    severity = Severity.FATAL
    public = False
    retryable = False
    
    def __init__(self, reason: str, **kwargs):
        super().__init__(**kwargs)
        self.reason = reason
        self.message = f"Invalid session configuration: {reason}"
        self.args = (self.message,)
