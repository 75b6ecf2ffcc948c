"""
PlumageSessions - Session records and metadata.

A session record is ``(principal, metadata)``. Metadata is an
insertion-ordered mapping that always carries:

- ``fingerprint``: random id, stable across renewals of one login
- ``inserted_at``: epoch milliseconds of the last create/renewal

Callers may add their own keys (``ip``, ``user_agent``, ``first_seen_at``...);
those survive renewal untouched.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from numbers import Real
from typing import Any, Iterable, NamedTuple

from .clock import Clock
from .faults import SessionStoreCorruptedFault
from .identifiers import IdentifierGenerator

logger = logging.getLogger("plumage.sessions")

FINGERPRINT = "fingerprint"
INSERTED_AT = "inserted_at"

Metadata = dict[str, Any]


class SessionRecord(NamedTuple):
    """Value stored under a session token."""
    principal: Any
    metadata: Metadata


def coerce_metadata(metadata: Mapping[str, Any] | Iterable[tuple[str, Any]] | None) -> Metadata:
    """
    Copy metadata into a fresh ordered dict.

    Accepts a mapping or a sequence of ``(key, value)`` pairs; with pairs,
    a repeated key keeps its first position and its last value.
    """
    if metadata is None:
        return {}
    if isinstance(metadata, Mapping):
        return dict(metadata)

    merged: Metadata = {}
    for pair in metadata:
        key, value = pair
        merged[key] = value
    return merged


def _is_timestamp(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def normalize_record(value: Any, token: str | None = None) -> SessionRecord:
    """
    Turn a raw stored value into a ``SessionRecord``.

    Records written before metadata existed hold a bare timestamp in the
    metadata slot: ``(principal, 1700000000000)`` becomes
    ``(principal, {"inserted_at": 1700000000000})``.

    Raises:
        SessionStoreCorruptedFault: value is not a 2-item record, or its
            metadata is neither a timestamp, a mapping nor a pair sequence,
            or its ``inserted_at`` is not a number
    """
    if not isinstance(value, (tuple, list)) or len(value) != 2:
        raise SessionStoreCorruptedFault(token=token, reason="expected a (principal, metadata) pair")

    principal, metadata = value

    # TODO: drop the bare-timestamp shim once records written before metadata existed have expired
    if _is_timestamp(metadata):
        logger.debug("Normalized legacy session record with bare timestamp")
        return SessionRecord(principal, {INSERTED_AT: metadata})

    if isinstance(metadata, (Mapping, list, tuple)):
        try:
            metadata = coerce_metadata(metadata)
        except (TypeError, ValueError) as e:
            raise SessionStoreCorruptedFault(token=token, reason=f"malformed metadata: {e}") from e

        inserted_at = metadata.get(INSERTED_AT)
        if inserted_at is not None and not _is_timestamp(inserted_at):
            raise SessionStoreCorruptedFault(
                token=token,
                reason=f"inserted_at must be epoch milliseconds, got {type(inserted_at).__name__}",
            )
        return SessionRecord(principal, metadata)

    raise SessionStoreCorruptedFault(
        token=token,
        reason=f"unsupported metadata type {type(metadata).__name__}",
    )


class MetadataMerger:
    """
    Adds the mandatory fields to caller metadata on every create.

    The fingerprint is put only when missing, so a renewal that carries
    the fetched metadata keeps the login's fingerprint. ``inserted_at``
    is always overwritten with the current time.
    """

    def __init__(self, identifiers: IdentifierGenerator, clock: Clock):
        self.identifiers = identifiers
        self.clock = clock

    def merge(self, metadata: Mapping[str, Any] | Iterable[tuple[str, Any]] | None) -> Metadata:
        merged = coerce_metadata(metadata)
        if FINGERPRINT not in merged:
            merged[FINGERPRINT] = self.identifiers.generate()
        merged[INSERTED_AT] = self.clock.now_ms()
        return merged
