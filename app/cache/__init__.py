"""
Read-through caching module with TTL expiry, persistent tier, and stale fallback.
"""
from .core import DEFAULT_TTL_MS, CacheEntry, CacheError, CorruptRecordError
from .durable import (
    DurableStore,
    DurableStoreError,
    MemoryDurableStore,
    QuotaExceededError,
    SqlDurableStore,
    build_durable_store,
)
from .store import EntryStore
from .ttl_policies import CacheKeys, TTLClass
from .manager import (
    CacheManager,
    create_cache_manager,
    get_cache_manager,
    set_cache_manager,
    shutdown_cache_manager,
)

__all__ = [
    # Core types
    "DEFAULT_TTL_MS",
    "CacheEntry",
    "CacheError",
    "CorruptRecordError",
    # Durable tier
    "DurableStore",
    "DurableStoreError",
    "MemoryDurableStore",
    "QuotaExceededError",
    "SqlDurableStore",
    "build_durable_store",
    # Storage
    "EntryStore",
    # TTL policies
    "CacheKeys",
    "TTLClass",
    # Manager
    "CacheManager",
    "create_cache_manager",
    "get_cache_manager",
    "set_cache_manager",
    "shutdown_cache_manager",
]
