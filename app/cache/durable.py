"""
Durable tier backends.

A durable store is a flat string-keyed, string-valued store that survives
process restarts. It may be shared with unrelated consumers, so callers
namespace their keys and only ever enumerate by prefix.
"""
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import sessionmaker

from app.db import make_session_factory
from app.models import CacheRecord
from .core import CacheError

logger = logging.getLogger("cache.durable")


class DurableStoreError(CacheError):
    """The durable tier could not complete an operation."""


class QuotaExceededError(DurableStoreError):
    """Writing the record would exceed the store's size quota."""


class DurableStore(ABC):
    """
    Key/value interface of the durable tier.

    Implementations are free to raise on I/O problems; the entry store
    treats every failure as non-fatal.
    """

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """Return the payload under key, or None if absent."""

    @abstractmethod
    def set_item(self, key: str, payload: str) -> None:
        """Store payload under key, replacing any previous value."""

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Remove key. Removing an absent key is not an error."""

    @abstractmethod
    def keys(self, prefix: str = "") -> List[str]:
        """List stored keys starting with prefix."""


class MemoryDurableStore(DurableStore):
    """
    Dict-backed store with optional size quota, modelled on browser
    localStorage. Lives as long as the object does.
    """

    def __init__(self, quota_bytes: Optional[int] = None):
        self._items: Dict[str, str] = {}
        self._lock = threading.Lock()
        self.quota_bytes = quota_bytes

    def _size_with(self, key: str, payload: str) -> int:
        size = sum(len(k) + len(v) for k, v in self._items.items() if k != key)
        return size + len(key) + len(payload)

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, payload: str) -> None:
        with self._lock:
            if self.quota_bytes is not None and self._size_with(key, payload) > self.quota_bytes:
                raise QuotaExceededError(
                    f"Storing {key} exceeds quota of {self.quota_bytes} bytes"
                )
            self._items[key] = payload

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def keys(self, prefix: str = "") -> List[str]:
        with self._lock:
            return [k for k in self._items if k.startswith(prefix)]

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class SqlDurableStore(DurableStore):
    """
    SQLAlchemy-backed store: one row per key in the cache_records table.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @classmethod
    def from_url(cls, database_url: str) -> "SqlDurableStore":
        logger.info(f"Opening durable cache tier at {database_url}")
        return cls(make_session_factory(database_url))

    def get_item(self, key: str) -> Optional[str]:
        with self._session_factory() as session:
            record = session.get(CacheRecord, key)
            return record.payload if record is not None else None

    def set_item(self, key: str, payload: str) -> None:
        with self._session_factory() as session:
            session.merge(
                CacheRecord(key=key, payload=payload, updated_at=datetime.utcnow())
            )
            session.commit()

    def remove_item(self, key: str) -> None:
        with self._session_factory() as session:
            session.query(CacheRecord).filter(CacheRecord.key == key).delete(
                synchronize_session=False
            )
            session.commit()

    def keys(self, prefix: str = "") -> List[str]:
        with self._session_factory() as session:
            query = session.query(CacheRecord.key)
            if prefix:
                # "_" is a LIKE wildcard; escape so cache_ never matches cacheX
                query = query.filter(CacheRecord.key.startswith(prefix, autoescape=True))
            return [row.key for row in query.all()]


def build_durable_store(backend: str, database_url: Optional[str] = None) -> DurableStore:
    """Create the durable tier selected by configuration."""
    if backend == "memory":
        return MemoryDurableStore()
    if backend == "sql":
        if not database_url:
            raise ValueError("cache_database_url is required for the sql backend")
        return SqlDurableStore.from_url(database_url)
    raise ValueError(f"Unknown cache backend: {backend}")
