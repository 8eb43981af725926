"""
Shared pytest fixtures and configuration for all tests.
"""
import os
from typing import Optional
from unittest.mock import MagicMock, AsyncMock

import pytest

from hypothesis import settings, Verbosity, Phase

from session.store import SessionBackend

# Default profile: balanced for local development
settings.register_profile(
    "default",
    max_examples=100,
    verbosity=Verbosity.normal,
    deadline=None,
    print_blob=True,
)

# CI profile: more thorough testing for continuous integration
settings.register_profile(
    "ci",
    max_examples=200,
    verbosity=Verbosity.verbose,
    deadline=None,
    print_blob=True,
    derandomize=True,
)

# Debug profile: minimal examples for quick debugging
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
    print_blob=True,
    phases=[Phase.explicit, Phase.reuse, Phase.generate],
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "default"))


class RecordingBackend(SessionBackend):
    """In-memory backend double that records every call."""

    def __init__(
        self,
        name: str = "recording",
        blobs: Optional[list] = None,
        fail_persist: bool = False,
        fail_delete: bool = False,
        fail_load: bool = False,
    ):
        self.name = name
        self.blobs = list(blobs or [])
        self.fail_persist = fail_persist
        self.fail_delete = fail_delete
        self.fail_load = fail_load
        self.persisted: list[tuple[str, str, int]] = []
        self.deleted: list[str] = []
        self.connected = False

    async def connect(self) -> None:
        self.connected = True

    async def disconnect(self) -> None:
        self.connected = False

    async def load_all(self) -> list:
        if self.fail_load:
            raise ConnectionError("load failed")
        return list(self.blobs)

    async def persist(self, session_id: str, blob: str, ttl_ms: int) -> None:
        if self.fail_persist:
            raise ConnectionError("persist failed")
        self.persisted.append((session_id, blob, ttl_ms))

    async def delete(self, session_id: str) -> None:
        if self.fail_delete:
            raise ConnectionError("delete failed")
        self.deleted.append(session_id)

    async def health_check(self) -> bool:
        return self.connected

    def writes_for(self, session_id: str) -> list[tuple[str, str, int]]:
        return [w for w in self.persisted if w[0] == session_id]


class FakeClock:
    """Settable epoch-millisecond clock."""

    def __init__(self, now: int = 1_700_000_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def backend() -> RecordingBackend:
    return RecordingBackend()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def mock_redis() -> MagicMock:
    """Create a mock Redis client for unit tests."""
    mock = MagicMock()
    mock.scan = AsyncMock(return_value=(0, []))
    mock.mget = AsyncMock(return_value=[])
    mock.set = AsyncMock(return_value=True)
    mock.delete = AsyncMock(return_value=1)
    mock.ping = AsyncMock(return_value=True)
    mock.aclose = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def make_backend():
    """Factory for additional RecordingBackend instances."""
    return RecordingBackend
