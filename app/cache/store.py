"""
Two-tier entry storage: an in-memory dict mirrored to a durable store.

The fast tier is the source of truth for the current process. The durable
tier is best effort: every failure there is logged and degrades the
operation to its memory-only equivalent.
"""
import logging
import threading
from typing import Any, Dict, List, Optional

from .core import CacheEntry, CorruptRecordError, now_ms
from .durable import DurableStore

logger = logging.getLogger("cache.store")

DEFAULT_KEY_PREFIX = "cache_"


class EntryStore:
    """
    Read/write/delete primitives over the fast and durable tiers.

    No TTL logic lives here; expiry is evaluated by the CacheManager.
    """

    def __init__(self, durable: DurableStore, key_prefix: str = DEFAULT_KEY_PREFIX):
        self._entries: Dict[str, CacheEntry[Any]] = {}
        self._lock = threading.RLock()
        self._durable = durable
        self.key_prefix = key_prefix

    def _durable_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    def _load_durable(self, key: str) -> Optional[CacheEntry[Any]]:
        """Load and decode a durable record; any failure reads as absent."""
        try:
            payload = self._durable.get_item(self._durable_key(key))
        except Exception as e:
            logger.warning(f"Failed to read {key} from durable tier: {e}")
            return None

        if payload is None:
            return None

        try:
            return CacheEntry.loads(key, payload)
        except CorruptRecordError as e:
            logger.warning(f"Ignoring unreadable durable record: {e}")
            return None
        except Exception as e:
            logger.warning(f"Failed to decode durable record for {key}: {e}")
            return None

    def write(self, key: str, value: Any, ttl: int, stored_at: Optional[int] = None) -> CacheEntry[Any]:
        """Store in the fast tier, then mirror to the durable tier."""
        entry = CacheEntry(
            key=key,
            value=value,
            stored_at=now_ms() if stored_at is None else stored_at,
            ttl=ttl,
        )
        with self._lock:
            self._entries[key] = entry

        try:
            self._durable.set_item(self._durable_key(key), entry.dumps())
        except Exception as e:
            logger.warning(f"Failed to persist {key} to durable tier: {e}")
            # An older record must not outlive this write across a restart
            try:
                self._durable.remove_item(self._durable_key(key))
            except Exception as remove_error:
                logger.warning(f"Failed to drop outdated durable record for {key}: {remove_error}")

        return entry

    def read(self, key: str) -> Optional[CacheEntry[Any]]:
        """Fast tier first; a durable hit is promoted into the fast tier."""
        with self._lock:
            entry = self._entries.get(key)
        if entry is not None:
            return entry

        entry = self._load_durable(key)
        if entry is None:
            return None

        with self._lock:
            # A write that landed meanwhile wins over the promoted copy
            entry = self._entries.setdefault(key, entry)
        logger.debug(f"Promoted {key} from durable tier")
        return entry

    def read_stale(self, key: str) -> Optional[CacheEntry[Any]]:
        """Look up an entry in either tier without promoting it."""
        with self._lock:
            entry = self._entries.get(key)
        if entry is not None:
            return entry
        return self._load_durable(key)

    def delete(self, key: str) -> bool:
        """
        Remove key from both tiers.

        Returns:
            True if the key was resident in the fast tier
        """
        with self._lock:
            existed = self._entries.pop(key, None) is not None

        try:
            self._durable.remove_item(self._durable_key(key))
        except Exception as e:
            logger.warning(f"Failed to remove {key} from durable tier: {e}")

        return existed

    def clear_all(self) -> int:
        """
        Empty the fast tier and drop every namespaced durable record.

        Returns:
            Number of fast-tier entries cleared
        """
        with self._lock:
            count = len(self._entries)
            self._entries.clear()

        try:
            durable_keys = self._durable.keys(self.key_prefix)
        except Exception as e:
            logger.warning(f"Failed to list durable records for clear: {e}")
            return count

        for durable_key in durable_keys:
            try:
                self._durable.remove_item(durable_key)
            except Exception as e:
                logger.warning(f"Failed to remove {durable_key} from durable tier: {e}")

        return count

    def keys(self) -> List[str]:
        """Keys resident in the fast tier (not durable-only records)."""
        with self._lock:
            return list(self._entries)

    def entries(self) -> List[CacheEntry[Any]]:
        """Consistent snapshot of the fast tier."""
        with self._lock:
            return list(self._entries.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries
