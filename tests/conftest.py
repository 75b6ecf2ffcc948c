"""
Shared test fixtures for the Plumage test suite.
"""

import pytest

from plumage.cache.backends.memory import MemoryBackend
from plumage.sessions.clock import ManualClock
from plumage.sessions.config import SessionConfig
from plumage.sessions.context import SessionContext
from plumage.sessions.manager import SessionManager
from plumage.sessions.store import CredentialsCache


class SequentialIdentifiers:
    """Predictable identifiers: id-1, id-2, ..."""

    def __init__(self, prefix: str = "id"):
        self.prefix = prefix
        self.count = 0

    def generate(self) -> str:
        self.count += 1
        return f"{self.prefix}-{self.count}"


@pytest.fixture
def clock():
    return ManualClock(0)


@pytest.fixture
def identifiers():
    return SequentialIdentifiers()


@pytest.fixture
def memory_backend():
    """MemoryBackend without the background sweeper."""
    return MemoryBackend(max_size=100, sweep_interval=0)


@pytest.fixture
def store(memory_backend):
    return CredentialsCache(memory_backend)


@pytest.fixture
def make_manager(store, clock, identifiers):
    """Build a SessionManager sharing the test store, clock and identifiers."""

    def factory(**config_kwargs) -> SessionManager:
        return SessionManager(
            SessionConfig(**config_kwargs),
            store=store,
            clock=clock,
            identifiers=identifiers,
        )

    return factory


@pytest.fixture
def manager(make_manager):
    return make_manager()


@pytest.fixture
def context():
    return SessionContext()
