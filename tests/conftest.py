"""Shared fixtures.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

import pytest

from bookcache_core.cache.cache import CacheConfig, CacheService, StorageKind
from bookcache_core.store.memory import MemoryStore


class FakeClock:
    """Settable time source in seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def cache(store, clock):
    return CacheService(CacheConfig(storage=StorageKind.SESSION, clock=clock), store=store)
