"""
PlumageSessions - Credentials storage.

Defines the CredentialsStore protocol the session manager relies on and
the shipped implementation:
- CredentialsCache: session records kept in a PlumageCache backend
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol, runtime_checkable

from plumage.cache.core import CacheBackend
from plumage.cache.faults import CacheFault, CacheSerializationFault

from .faults import SessionStoreCorruptedFault, SessionStoreUnavailableFault, hash_token
from .metadata import SessionRecord

logger = logging.getLogger("plumage.sessions.store")

DEFAULT_CREDENTIALS_NAMESPACE = "credentials"
DEFAULT_CREDENTIALS_TTL = 30 * 60 * 1000  # 30 minutes in ms


# ============================================================================
# CredentialsStore Protocol
# ============================================================================

@runtime_checkable
class CredentialsStore(Protocol):
    """
    Key-value store of session records with per-entry TTL.

    Stores are responsible ONLY for persistence. Staleness and rotation
    decisions happen in SessionManager. A ``put`` must be visible to a
    subsequent ``get``/``delete`` of the same key.
    """

    async def get(self, key: str) -> SessionRecord | Any | None:
        """
        Load the record stored under ``key``.

        Returns:
            The stored ``(principal, metadata)`` value, or None if not found

        Raises:
            SessionStoreUnavailableFault: Store is unavailable
        """
        ...

    async def put(self, key: str, record: SessionRecord, ttl: int | None = None) -> None:
        """
        Store ``record`` under ``key``, replacing any previous value.

        Args:
            key: Session token
            record: ``(principal, metadata)``
            ttl: Lifetime in milliseconds (None = store default)
        """
        ...

    async def delete(self, key: str) -> None:
        """Delete ``key``. Deleting a missing key is not an error."""
        ...


# ============================================================================
# CredentialsCache - Cache-backed store
# ============================================================================

class CredentialsCache:
    """
    Credentials store on top of a cache backend.

    Entries are written as ``{namespace}:{token}`` in the backend's
    ``namespace`` so several stores may share one backend.

    Example:
        >>> store = CredentialsCache(MemoryBackend(), ttl=30 * 60 * 1000)
        >>> await store.put("my_app_5f0c...", SessionRecord(user, metadata))
        >>> await store.get("my_app_5f0c...")
        SessionRecord(principal=..., metadata={...})
    """

    # Errors that mean "the store could not answer", as opposed to bugs
    _UNAVAILABLE_ERRORS = (CacheFault, OSError, ConnectionError, TimeoutError)

    def __init__(
        self,
        backend: CacheBackend,
        namespace: str = DEFAULT_CREDENTIALS_NAMESPACE,
        ttl: int | None = DEFAULT_CREDENTIALS_TTL,
    ):
        """
        Args:
            backend: Cache backend holding the records
            namespace: Key namespace within the backend
            ttl: Default record lifetime in milliseconds (None = no expiry)
        """
        self.backend = backend
        self.namespace = namespace
        self.ttl = ttl
        self._initialized = False
        self._init_lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return f"credentials_cache:{self.backend.name}"

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    async def _ensure_initialized(self) -> None:
        if self._initialized:
            return
        async with self._init_lock:
            if not self._initialized:
                await self._call("initialize", None, self.backend.initialize())
                self._initialized = True

    async def _call(self, operation: str, key: str | None, awaitable: Any) -> Any:
        try:
            return await awaitable
        except CacheSerializationFault as e:
            # Serialization failures are permanent
            logger.error(f"Credentials store {operation} could not (de)serialize record: {e}")
            raise SessionStoreCorruptedFault(token=key, reason=e.message) from e
        except self._UNAVAILABLE_ERRORS as e:
            target = f" for {hash_token(key)}" if key else ""
            logger.error(f"Credentials store {operation} failed{target}: {e}")
            raise SessionStoreUnavailableFault(
                store_name=self.name,
                cause=str(e),
                operation=operation,
            ) from e

    async def get(self, key: str) -> Any | None:
        await self._ensure_initialized()
        entry = await self._call("get", key, self.backend.get(self._key(key)))
        if entry is None:
            return None
        return entry.value

    async def put(self, key: str, record: SessionRecord, ttl: int | None = None) -> None:
        await self._ensure_initialized()
        ttl = self.ttl if ttl is None else ttl
        await self._call(
            "put",
            key,
            self.backend.set(
                self._key(key),
                tuple(record),
                ttl=ttl / 1000 if ttl else None,
                namespace=self.namespace,
            ),
        )

    async def delete(self, key: str) -> None:
        await self._ensure_initialized()
        await self._call("delete", key, self.backend.delete(self._key(key), namespace=self.namespace))

    async def sessions(self, principal: Any) -> list[str]:
        """
        List live session tokens whose record belongs to ``principal``.

        Scans the whole namespace; intended for "active sessions" pages
        and administrative sign-out, not per-request use.
        """
        await self._ensure_initialized()
        prefix = f"{self.namespace}:"
        keys = await self._call("keys", None, self.backend.keys(namespace=self.namespace))

        tokens = []
        for full_key in keys:
            entry = await self._call("get", None, self.backend.get(full_key))
            if entry is None:
                continue
            value = entry.value
            if isinstance(value, (tuple, list)) and len(value) == 2 and value[0] == principal:
                tokens.append(full_key[len(prefix):])
        return tokens

    async def clear(self) -> int:
        """Drop every record in this store's namespace."""
        await self._ensure_initialized()
        return await self._call("clear", None, self.backend.clear(namespace=self.namespace))

    async def shutdown(self) -> None:
        """Release backend resources."""
        if self._initialized:
            await self.backend.shutdown()
            self._initialized = False
