"""
Shared fixtures for cache tests.
"""
from typing import List, Optional

import pytest

from app.cache import CacheManager, DurableStore, DurableStoreError, EntryStore, MemoryDurableStore


class FakeClock:
    """Manually advanced clock returning epoch milliseconds."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class BrokenDurableStore(DurableStore):
    """Durable tier where every operation fails (storage unavailable)."""

    def get_item(self, key: str) -> Optional[str]:
        raise DurableStoreError("storage unavailable")

    def set_item(self, key: str, payload: str) -> None:
        raise DurableStoreError("storage unavailable")

    def remove_item(self, key: str) -> None:
        raise DurableStoreError("storage unavailable")

    def keys(self, prefix: str = "") -> List[str]:
        raise DurableStoreError("storage unavailable")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def durable():
    return MemoryDurableStore()


@pytest.fixture
def store(durable):
    return EntryStore(durable)


@pytest.fixture
def manager(store, clock):
    return CacheManager(store, default_ttl=1000, clock=clock, sweep_interval=0.01)


@pytest.fixture
def broken_durable():
    return BrokenDurableStore()
