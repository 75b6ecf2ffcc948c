"""
PlumageSessions - Session Manager.

The SessionManager owns the session lifecycle:
1. fetch  - resolve the principal behind the transport token, renewing
            stale sessions on the way
2. create - write a fresh record under a fresh token (login / renewal)
3. delete - drop the record and the transport token (logout)

The manager keeps no per-request state; everything persistent lives in
the credentials store and everything request-scoped in SessionContext.

Staleness:
    Absent -> no principal
    Fresh  -> principal, context untouched
    Stale  -> create() rotates the token; the new record is fresh, so a
              fetch renews at most once

Concurrent requests holding the same stale token each rotate on their
own; both delete the same old key (harmless) and the client keeps
whichever new token its transport stores last. No locking is done here.
"""

from __future__ import annotations

import logging
from typing import Any

from .clock import Clock, SystemClock
from .config import SessionConfig, build_store
from .context import SessionContext
from .faults import hash_token
from .identifiers import IdentifierGenerator, UUIDGenerator
from .metadata import INSERTED_AT, MetadataMerger, SessionRecord, normalize_record
from .store import CredentialsStore


class SessionManager:
    """
    Session-based authentication lifecycle.

    Built once per application; ``fetch``/``create``/``delete`` are called
    per request with that request's context.

    Example:
        >>> manager = SessionManager(SessionConfig(app_name="my_app"))
        >>> ctx, user = await manager.create(SessionContext(), {"id": 1})   # login
        >>> ctx, user = await manager.fetch(ctx)                            # later request
        >>> ctx = await manager.delete(ctx)                                 # logout
    """

    def __init__(
        self,
        config: SessionConfig | None = None,
        store: CredentialsStore | None = None,
        clock: Clock | None = None,
        identifiers: IdentifierGenerator | None = None,
        logger: logging.Logger | None = None,
    ):
        """
        Args:
            config: Session configuration (defaults apply if None)
            store: Credentials store; built from ``config`` if None
            clock: Time source for staleness (wall clock if None)
            identifiers: Token and fingerprint generator (UUID4 if None)
            logger: Optional logger
        """
        self.config = config or SessionConfig()
        self.store = store if store is not None else build_store(self.config)
        self.clock = clock or SystemClock()
        self.identifiers = identifiers or UUIDGenerator()
        self.logger = logger or logging.getLogger("plumage.sessions")

        self.session_key = self.config.resolved_session_key
        self.namespacer = self.config.namespacer
        self.merger = MetadataMerger(self.identifiers, self.clock)

    # ========================================================================
    # Fetch
    # ========================================================================

    async def fetch(self, context: SessionContext) -> tuple[SessionContext, Any | None]:
        """
        Resolve the principal for the token held by the transport.

        The stored metadata is echoed into ``context.metadata`` so callers
        can extend it before a later ``create``. A stale session is
        rotated in place: the store and the transport token change.

        A token unknown to the store yields no principal and is left in
        the transport as-is.

        Returns:
            ``(context, principal)``, principal None when unauthenticated

        Raises:
            SessionStoreUnavailableFault: store failure (never downgraded
                to "not authenticated")
            SessionStoreCorruptedFault: unreadable record
        """
        token = context.get_session(self.session_key)
        if not token:
            return context, None

        value = await self.store.get(token)
        if value is None:
            self.logger.debug(f"Session not found: {hash_token(token)}")
            return context, None

        record = normalize_record(value, token=token)
        context.metadata = record.metadata

        if self.is_stale(record.metadata):
            self.logger.debug(f"Session stale, renewing: {hash_token(token)}")
            return await self.create(context, record.principal)

        return context, record.principal

    # ========================================================================
    # Create
    # ========================================================================

    async def create(self, context: SessionContext, principal: Any) -> tuple[SessionContext, Any]:
        """
        Store ``principal`` under a freshly generated token.

        Metadata is taken from ``context.metadata``: its fingerprint is kept
        if present (renewal) or generated (new login), and ``inserted_at``
        is reset to now. The previous token, if any, is deleted only after
        the new record has been written.

        Returns:
            ``(context, principal)`` with the new token in the transport
        """
        metadata = self.merger.merge(context.metadata)
        token = self.namespacer.prepend(self.identifiers.generate())

        await self.store.put(token, SessionRecord(principal, metadata))

        context = await self.delete(context)
        # Context and stored record never share a dict
        context.metadata = dict(metadata)
        context.put_session(self.session_key, token)

        self.logger.info(f"Session created: {hash_token(token)}")
        return context, principal

    # ========================================================================
    # Delete
    # ========================================================================

    async def delete(self, context: SessionContext) -> SessionContext:
        """
        Delete the session referenced by the transport token.

        Safe without a token. The store delete is idempotent.
        """
        token = context.get_session(self.session_key)
        if token:
            await self.store.delete(token)
            self.logger.info(f"Session deleted: {hash_token(token)}")

        context.delete_session(self.session_key)
        return context

    # ========================================================================
    # Staleness
    # ========================================================================

    def is_stale(self, metadata: dict[str, Any]) -> bool:
        """
        ``inserted_at + session_ttl_renewal < now``.

        Never stale when renewal is disabled. A record without
        ``inserted_at`` cannot be aged and is renewed.
        """
        ttl = self.config.session_ttl_renewal
        if ttl is None:
            return False

        inserted_at = metadata.get(INSERTED_AT)
        if inserted_at is None:
            return True

        return inserted_at + ttl < self.clock.now_ms()
