"""
Tests for durable tier backends.
"""
import pytest

from app.cache import (
    CacheManager,
    EntryStore,
    MemoryDurableStore,
    QuotaExceededError,
    SqlDurableStore,
    build_durable_store,
)


@pytest.fixture
def sql_url(tmp_path):
    return f"sqlite:///{tmp_path / 'cache.db'}"


@pytest.fixture
def sql_store(sql_url):
    return SqlDurableStore.from_url(sql_url)


class TestMemoryDurableStore:

    def test_set_get_remove(self):
        durable = MemoryDurableStore()
        durable.set_item("k", "v")
        assert durable.get_item("k") == "v"
        durable.remove_item("k")
        durable.remove_item("k")
        assert durable.get_item("k") is None

    def test_quota(self):
        durable = MemoryDurableStore(quota_bytes=8)
        durable.set_item("k", "1234")
        with pytest.raises(QuotaExceededError):
            durable.set_item("j", "1234")
        # Replacing an existing key only counts the new payload
        durable.set_item("k", "12345")
        assert durable.get_item("k") == "12345"


class TestSqlDurableStore:

    def test_set_get_replace(self, sql_store):
        sql_store.set_item("cache_A", "one")
        sql_store.set_item("cache_A", "two")
        assert sql_store.get_item("cache_A") == "two"
        assert sql_store.get_item("cache_B") is None

    def test_remove_is_idempotent(self, sql_store):
        sql_store.set_item("cache_A", "one")
        sql_store.remove_item("cache_A")
        sql_store.remove_item("cache_A")
        assert sql_store.get_item("cache_A") is None

    def test_prefix_is_literal(self, sql_store):
        sql_store.set_item("cache_A", "1")
        sql_store.set_item("cacheXA", "2")
        sql_store.set_item("other", "3")
        assert sql_store.keys("cache_") == ["cache_A"]
        assert sorted(sql_store.keys()) == ["cacheXA", "cache_A", "other"]

    def test_records_survive_restart(self, sql_url, clock):
        first = CacheManager(EntryStore(SqlDurableStore.from_url(sql_url)), clock=clock)
        first.set("user_profile_1", {"name": "Ada", "scores": [90, 85]}, ttl=60_000)

        second = CacheManager(EntryStore(SqlDurableStore.from_url(sql_url)), clock=clock)
        assert second.get_stats()["size"] == 0
        assert second.get("user_profile_1") == {"name": "Ada", "scores": [90, 85]}

    def test_clear_leaves_foreign_rows(self, sql_store):
        sql_store.set_item("session_token", "abc")
        store = EntryStore(sql_store)
        store.write("A", 1, 1000)
        store.clear_all()
        assert sql_store.keys() == ["session_token"]


class TestBuildDurableStore:

    def test_memory_backend(self):
        assert isinstance(build_durable_store("memory"), MemoryDurableStore)

    def test_sql_backend(self, sql_url):
        assert isinstance(build_durable_store("sql", sql_url), SqlDurableStore)

    def test_sql_backend_requires_url(self):
        with pytest.raises(ValueError):
            build_durable_store("sql")

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            build_durable_store("redis")
