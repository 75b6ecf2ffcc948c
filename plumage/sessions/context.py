"""
PlumageSessions - Request-scoped session context.

The context is threaded explicitly through ``fetch``/``create``/``delete``.
It carries:

- ``session``: the host's transport mapping (for example the decoded
  contents of a signed cookie); only the token field is touched here
- ``metadata``: the session metadata side-channel, written by ``fetch``
  and read by ``create``
- ``assigns``: per-request values for the host, such as the current principal
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, MutableMapping

from .metadata import Metadata


@dataclass
class SessionContext:
    """
    Per-request state shared between the host and the session manager.

    Example:
        >>> ctx = SessionContext(session=cookie_values)
        >>> ctx, user = await manager.fetch(ctx)
        >>> ctx.put_new_metadata("first_seen_at", now)
        >>> ctx.put_metadata("ip", request.client[0])
    """

    session: MutableMapping[str, Any] = field(default_factory=dict)
    metadata: Metadata | None = None
    assigns: dict[str, Any] = field(default_factory=dict)

    # Transport

    def get_session(self, key: str) -> Any:
        return self.session.get(key)

    def put_session(self, key: str, value: Any) -> None:
        self.session[key] = value

    def delete_session(self, key: str) -> None:
        self.session.pop(key, None)

    # Metadata side-channel

    def put_metadata(self, key: str, value: Any) -> None:
        """Set a metadata key, replacing any existing value."""
        if self.metadata is None:
            self.metadata = {}
        self.metadata[key] = value

    def put_new_metadata(self, key: str, value: Any) -> None:
        """Set a metadata key only if it is not present yet."""
        if self.metadata is None:
            self.metadata = {}
        self.metadata.setdefault(key, value)

    # Assigns

    def assign(self, key: str, value: Any) -> None:
        self.assigns[key] = value
