"""
PlumageSessions - Session configuration.

``SessionConfig`` is immutable and resolved once, when a SessionManager
is built. Defaults live here as named constants.

Recognised options:
    app_name: namespace for tokens and the default session key
    session_key: transport field name (default "auth", namespaced)
    session_store: (selector, options) for the credentials store
    cache_store_backend: backend selector for the default store ("memory")
    cache_store_options: keyword arguments for the backend
    session_ttl_renewal: ms before a session is rotated (None disables)
    current_user_assigns_key: where middleware assigns the principal
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Mapping

from plumage.cache.backends import MemoryBackend, RedisBackend
from plumage.cache.core import CacheBackend

from .faults import SessionConfigFault
from .namespace import Namespacer
from .store import CredentialsCache, CredentialsStore

logger = logging.getLogger("plumage.sessions")

DEFAULT_SESSION_KEY = "auth"
DEFAULT_SESSION_TTL_RENEWAL = 15 * 60 * 1000  # 15 minutes in ms
DEFAULT_CURRENT_USER_ASSIGNS_KEY = "current_user"
DEFAULT_CACHE_STORE_BACKEND = "memory"
DEFAULT_SESSION_STORE = "credentials_cache"

# Marker accepted from config files and env vars to switch renewal off
RENEWAL_DISABLED = "none"


STORE_FACTORIES: dict[str, Callable[..., CredentialsStore]] = {
    "credentials_cache": CredentialsCache,
}

BACKEND_FACTORIES: dict[str, Callable[..., CacheBackend]] = {
    "memory": MemoryBackend,
    "redis": RedisBackend,
}


@dataclass(frozen=True)
class SessionConfig:
    """
    Session manager configuration.

    Example:
        >>> config = SessionConfig(
        ...     app_name="my_app",
        ...     session_store=("credentials_cache", {"ttl": 30 * 60 * 1000}),
        ...     cache_store_backend="redis",
        ...     cache_store_options={"url": "redis://localhost:6379/0"},
        ...     session_ttl_renewal=15 * 60 * 1000,
        ... )
        >>> config.resolved_session_key
        'my_app_auth'
    """

    app_name: str | None = None
    session_key: str | None = None
    session_store: Any = None
    cache_store_backend: Any = DEFAULT_CACHE_STORE_BACKEND
    cache_store_options: Mapping[str, Any] = field(default_factory=dict)
    session_ttl_renewal: int | None = DEFAULT_SESSION_TTL_RENEWAL
    current_user_assigns_key: str = DEFAULT_CURRENT_USER_ASSIGNS_KEY

    def __post_init__(self):
        ttl = self.session_ttl_renewal
        if isinstance(ttl, str):
            if ttl.strip().lower() != RENEWAL_DISABLED:
                raise SessionConfigFault(f"session_ttl_renewal must be milliseconds or 'none', got {ttl!r}")
            object.__setattr__(self, "session_ttl_renewal", None)
        elif ttl is not None and (isinstance(ttl, bool) or not isinstance(ttl, int) or ttl < 0):
            raise SessionConfigFault(f"session_ttl_renewal must be a non-negative int, got {ttl!r}")

        if self.session_key is not None and not isinstance(self.session_key, str):
            raise SessionConfigFault(f"session_key must be a string, got {self.session_key!r}")

    @property
    def namespacer(self) -> Namespacer:
        return Namespacer(self.app_name)

    @property
    def resolved_session_key(self) -> str:
        """Configured session key, or the namespaced default."""
        if self.session_key is not None:
            return self.session_key
        return self.namespacer.prepend(DEFAULT_SESSION_KEY)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SessionConfig:
        """
        Build config from a plain mapping (config file section).

        ``session_store`` may be given as a selector string, as
        ``[selector, options]`` or as ``{"type": selector, **options}``.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known - {"enabled"}
        if unknown:
            raise SessionConfigFault(f"unknown session options: {sorted(unknown)}")

        kwargs = {k: v for k, v in data.items() if k in known}

        store = kwargs.get("session_store")
        if isinstance(store, Mapping):
            store = dict(store)
            selector = store.pop("type", DEFAULT_SESSION_STORE)
            kwargs["session_store"] = (selector, store)
        elif isinstance(store, list):
            kwargs["session_store"] = tuple(store)

        if kwargs.get("cache_store_options") is None:
            kwargs.pop("cache_store_options", None)

        return cls(**kwargs)

    @classmethod
    def from_loader(cls, loader: Any) -> SessionConfig:
        """Build config from a ``plumage.config.ConfigLoader``."""
        return cls.from_dict(loader.get_session_config())


# ============================================================================
# Store resolution
# ============================================================================

def _resolve(selector: Any, registry: Mapping[str, Callable[..., Any]], kind: str) -> Callable[..., Any]:
    if isinstance(selector, str):
        factory = registry.get(selector)
        if factory is None:
            raise SessionConfigFault(f"unknown {kind} {selector!r}; options: {sorted(registry)}")
        return factory
    if callable(selector):
        return selector
    raise SessionConfigFault(f"{kind} must be a name or a factory, got {selector!r}")


def build_backend(config: SessionConfig) -> CacheBackend:
    """Instantiate the cache backend named by ``cache_store_backend``."""
    selector = config.cache_store_backend
    if isinstance(selector, CacheBackend):
        return selector
    factory = _resolve(selector, BACKEND_FACTORIES, "cache store backend")
    return factory(**dict(config.cache_store_options))


def build_store(config: SessionConfig) -> CredentialsStore:
    """
    Instantiate the credentials store named by ``session_store``.

    Accepted forms:
        None                           -> CredentialsCache over the configured backend
        store instance                 -> used as-is
        selector                       -> (selector, {})
        (selector, options)            -> factory(**options)

    The default store receives ``backend`` unless the options provide one.
    """
    setting = config.session_store
    if setting is None:
        setting = (DEFAULT_SESSION_STORE, {})

    if isinstance(setting, CredentialsStore) and not isinstance(setting, type):
        return setting

    if isinstance(setting, tuple):
        if len(setting) != 2 or not isinstance(setting[1], Mapping):
            raise SessionConfigFault(f"session_store must be (selector, options), got {setting!r}")
        selector, options = setting[0], dict(setting[1])
    else:
        selector, options = setting, {}

    factory = _resolve(selector, STORE_FACTORIES, "session store")
    if factory is CredentialsCache and "backend" not in options:
        options["backend"] = build_backend(config)

    store = factory(**options)
    logger.debug(f"Session store resolved: {getattr(store, 'name', type(store).__name__)}")
    return store
