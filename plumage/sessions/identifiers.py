"""
PlumageSessions - Random identifier generation.

Identifiers serve both as session tokens (after namespacing) and as
session fingerprints.
"""

from __future__ import annotations

import uuid
from typing import Protocol


class IdentifierGenerator(Protocol):
    """Produces unique, unguessable opaque strings."""
    
    def generate(self) -> str:
        ...


class UUIDGenerator:
    """Random (version 4) UUIDs in canonical string form."""
    
    def generate(self) -> str:
        return str(uuid.uuid4())
