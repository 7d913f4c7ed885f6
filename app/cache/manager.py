"""
Read-through cache orchestration with TTL expiry and stale-on-failure fallback.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, TypeVar

from config.settings import settings
from .core import DEFAULT_TTL_MS, CacheEntry, now_ms, resolve_ttl
from .durable import build_durable_store
from .store import EntryStore

logger = logging.getLogger("cache.manager")

T = TypeVar("T")


class CacheManager:
    """
    Main cache orchestration with:
    - Read-through get_or_fetch (fetch only on miss)
    - Lazy expiry on read plus a periodic background sweep
    - Stale fallback when the upstream fetch fails
    - Substring-based bulk invalidation

    Concurrent misses for the same key are not coalesced: each caller
    fetches independently and the last write wins.
    """

    def __init__(
        self,
        store: EntryStore,
        default_ttl: int = DEFAULT_TTL_MS,
        clock: Optional[Callable[[], int]] = None,
        sweep_interval: float = 300.0,
    ):
        """
        Initialize the cache manager.

        Args:
            store: Two-tier entry storage
            default_ttl: TTL in milliseconds for writes that don't specify one
            clock: Returns the current time in epoch milliseconds
            sweep_interval: Seconds between background sweeps
        """
        self._store = store
        self.default_ttl = default_ttl
        self._clock = clock or now_ms
        self.sweep_interval = sweep_interval
        self._sweep_task: Optional[asyncio.Task] = None

        # Stats tracking
        self._stats = {
            "hits": 0,
            "misses": 0,
            "fetches": 0,
            "fetch_failures": 0,
            "stale_served": 0,
            "evictions": 0,
        }

    def _lookup(self, key: str) -> Optional[CacheEntry[Any]]:
        """Return the fresh entry for key, evicting it if expired."""
        entry = self._store.read(key)
        if entry is None:
            return None

        now = self._clock()
        if entry.is_expired(now):
            logger.debug(f"CACHE EXPIRED: {key} [age={entry.age(now)}ms]")
            self._store.delete(key)
            self._stats["evictions"] += 1
            return None

        return entry

    def get(self, key: str, default: Any = None) -> Any:
        """Return the cached value, or default on a miss or expiry."""
        entry = self._lookup(key)
        if entry is None:
            self._stats["misses"] += 1
            return default
        self._stats["hits"] += 1
        return entry.value

    def has(self, key: str) -> bool:
        """True if a fresh entry exists for key."""
        return self._lookup(key) is not None

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """Write value under key, replacing any previous entry."""
        self._store.write(
            key, value, resolve_ttl(ttl, self.default_ttl), stored_at=self._clock()
        )

    async def get_or_fetch(
        self,
        key: str,
        fetch_fn: Callable[[], Awaitable[T]],
        ttl: Optional[int] = None,
    ) -> T:
        """
        Get data from cache or fetch from upstream.

        Args:
            key: Cache key
            fetch_fn: Zero-argument coroutine function producing the value
            ttl: Milliseconds to keep the fetched value (default_ttl if None)

        Returns:
            The cached, freshly fetched, or (on fetch failure) stale value

        Raises:
            Exception: the fetch error, unchanged, when no stale value exists
        """
        # An expired entry is kept until the fetch settles: it is the stale
        # fallback if the fetch fails, and is overwritten if it succeeds.
        entry = self._store.read(key)
        if entry is not None and not entry.is_expired(self._clock()):
            logger.debug(f"CACHE HIT: {key}")
            self._stats["hits"] += 1
            return entry.value

        logger.info(f"CACHE MISS: {key}")
        self._stats["misses"] += 1
        self._stats["fetches"] += 1
        try:
            data = await fetch_fn()
        except Exception as e:
            self._stats["fetch_failures"] += 1
            stale = self._store.read_stale(key)
            if stale is None:
                raise
            logger.warning(f"Using stale cache data for {key} due to fetch failure: {e}")
            self._stats["stale_served"] += 1
            return stale.value

        self.set(key, data, ttl)
        return data

    def delete(self, key: str) -> bool:
        """
        Remove a specific cache entry.

        Returns:
            True if the entry was resident in memory
        """
        removed = self._store.delete(key)
        if removed:
            logger.info(f"Invalidated cache: {key}")
        return removed

    def clear(self) -> int:
        """
        Clear all cache entries, including persisted ones.

        Returns:
            Number of in-memory entries cleared
        """
        count = self._store.clear_all()
        logger.info(f"Cleared {count} cache entries")
        return count

    def invalidate_pattern(self, pattern: str) -> int:
        """
        Invalidate all cache entries whose key contains a substring.

        Args:
            pattern: Substring to match in cache keys

        Returns:
            Number of entries invalidated
        """
        to_delete = [k for k in self._store.keys() if pattern in k]
        for key in to_delete:
            self._store.delete(key)
        if to_delete:
            logger.info(f"Invalidated {len(to_delete)} entries matching '{pattern}'")
        return len(to_delete)

    def sweep(self) -> int:
        """
        Remove every expired in-memory entry (and its persisted copy).

        Returns:
            Number of entries removed
        """
        now = self._clock()
        expired = [e.key for e in self._store.entries() if e.is_expired(now)]
        for key in expired:
            self._store.delete(key)
        if expired:
            self._stats["evictions"] += len(expired)
            logger.info(f"Swept {len(expired)} expired cache entries")
        return len(expired)

    def preload(self, entries: Mapping[str, Any], ttl: Optional[int] = None) -> None:
        """Seed the cache with key/value pairs sharing one TTL."""
        for key, value in entries.items():
            self.set(key, value, ttl)
        logger.info(f"Preloaded {len(entries)} cache entries")

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        total_requests = self._stats["hits"] + self._stats["misses"]
        hit_rate = (self._stats["hits"] / total_requests * 100) if total_requests > 0 else 0

        return {
            "size": len(self._store),
            "keys": self._store.keys(),
            "hit_rate_percent": round(hit_rate, 1),
            **self._stats,
        }

    # =========================================================================
    # Background sweep
    # =========================================================================

    @property
    def sweeper_running(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            try:
                self.sweep()
            except Exception as e:
                logger.error(f"Cache sweep failed: {e}")

    def start_sweeper(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if self.sweeper_running:
            return
        self._sweep_task = asyncio.get_running_loop().create_task(self._sweep_loop())
        logger.debug(f"Cache sweeper started (every {self.sweep_interval}s)")

    async def stop_sweeper(self) -> None:
        """Cancel the periodic sweep and wait for it to finish."""
        task, self._sweep_task = self._sweep_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("Cache sweeper stopped")

    async def aclose(self) -> None:
        """
        Tear down before the process exits.

        Durable writes are synchronous, so there is nothing to flush; only
        the sweeper must stop before the store goes away.
        """
        await self.stop_sweeper()


# Global cache manager instance
_cache_manager: Optional[CacheManager] = None


def create_cache_manager() -> CacheManager:
    """Build a cache manager from application settings."""
    durable = build_durable_store(settings.cache_backend, settings.cache_database_url)
    store = EntryStore(durable, key_prefix=settings.cache_key_prefix)
    return CacheManager(
        store,
        default_ttl=settings.cache_default_ttl_ms,
        sweep_interval=settings.cache_sweep_interval_seconds,
    )


def get_cache_manager() -> CacheManager:
    """Get or create the global cache manager."""
    global _cache_manager
    if _cache_manager is None:
        _cache_manager = create_cache_manager()
    return _cache_manager


def set_cache_manager(manager: Optional[CacheManager]) -> None:
    """Install (or with None, forget) the global cache manager."""
    global _cache_manager
    _cache_manager = manager


async def shutdown_cache_manager() -> None:
    """Stop the global manager's sweeper and forget the instance."""
    global _cache_manager
    manager, _cache_manager = _cache_manager, None
    if manager is not None:
        await manager.aclose()
