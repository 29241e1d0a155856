"""
Shared pytest fixtures for openmemory tests.

Uses the in-memory blob store, a fixed chat location and a controllable
clock so that tests run without touching the filesystem or waiting on
real time.
"""

from __future__ import annotations

import pytest

from openmemory.context import StaticContext
from openmemory.memory import MemoryManager
from openmemory.models import MemoryRecord
from openmemory.store import InMemoryBlobStore

CHAT_URL = "https://chat.openai.com/c/abc-123"

#: 2024-01-01T00:00:00Z
START_TIME = 1_704_067_200.0

HOUR = 60 * 60


class FakeClock:
    """Deterministic stand-in for ``time.time``."""

    def __init__(self, start: float = START_TIME) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FailingBlobStore:
    """Blob store whose reads and/or writes always raise."""

    def __init__(self, fail_get: bool = True, fail_set: bool = True) -> None:
        self.fail_get = fail_get
        self.fail_set = fail_set
        self.writes = 0

    def get(self, key: str) -> bytes | None:
        if self.fail_get:
            raise OSError("storage unavailable")
        return None

    def set(self, key: str, value: bytes) -> None:
        self.writes += 1
        if self.fail_set:
            raise OSError("storage full")


def make_record(content: str, id: str = "r1", timestamp: float = START_TIME, **kwargs) -> MemoryRecord:
    """A record built directly, bypassing classification."""
    return MemoryRecord(id=id, content=content, timestamp=timestamp, **kwargs)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture()
def context() -> StaticContext:
    return StaticContext(CHAT_URL)


@pytest.fixture()
def memory_manager(blob_store, context, clock) -> MemoryManager:
    """MemoryManager wired to the in-memory store and fake clock."""
    return MemoryManager(blob_store=blob_store, context=context, _clock=clock)
