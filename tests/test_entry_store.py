"""
Unit tests for the two-tier entry store.
"""
from app.cache import EntryStore, MemoryDurableStore


class TestFastTier:
    """Reads and writes that never need the durable tier."""

    def test_write_then_read(self, store):
        store.write("A", {"n": 1}, 1000)
        entry = store.read("A")
        assert entry.value == {"n": 1}
        assert entry.ttl == 1000

    def test_write_overwrites_both_tiers(self, store, durable):
        store.write("A", 1, 1000)
        store.write("A", 2, 1000)
        assert store.read("A").value == 2
        assert '"value": 2' in durable.get_item("cache_A")

    def test_read_missing_key(self, store):
        assert store.read("nope") is None

    def test_value_is_not_copied(self, store):
        payload = {"items": [1, 2]}
        store.write("A", payload, 1000)
        assert store.read("A").value is payload

    def test_keys_and_len(self, store):
        store.write("a", 1, 1000)
        store.write("b", 2, 1000)
        assert sorted(store.keys()) == ["a", "b"]
        assert len(store) == 2
        assert "a" in store


class TestDurableTier:
    """Mirroring, promotion, and tolerance of durable failures."""

    def test_write_mirrors_with_prefix(self, store, durable):
        store.write("A", [1, 2], 1000, stored_at=42)
        assert durable.keys() == ["cache_A"]

    def test_read_promotes_durable_entry(self, durable):
        EntryStore(durable).write("A", {"n": 1}, 1000)

        # Fresh process: empty fast tier over the same durable tier
        restarted = EntryStore(durable)
        assert restarted.keys() == []
        assert restarted.read("A").value == {"n": 1}
        assert restarted.keys() == ["A"]

    def test_durable_only_entries_not_listed(self, durable):
        EntryStore(durable).write("A", 1, 1000)
        assert EntryStore(durable).keys() == []

    def test_corrupt_record_reads_as_absent(self, store, durable):
        durable.set_item("cache_A", "{not json")
        assert store.read("A") is None
        assert store.read_stale("A") is None

    def test_read_stale_does_not_promote(self, durable):
        EntryStore(durable).write("A", 1, 1000)
        restarted = EntryStore(durable)
        assert restarted.read_stale("A").value == 1
        assert "A" not in restarted

    def test_quota_failure_does_not_fail_write(self):
        durable = MemoryDurableStore(quota_bytes=10)
        store = EntryStore(durable)
        store.write("A", "x" * 100, 1000)
        assert store.read("A").value == "x" * 100
        assert durable.get_item("cache_A") is None

    def test_failed_write_drops_older_record(self):
        durable = MemoryDurableStore(quota_bytes=80)
        store = EntryStore(durable)
        store.write("A", 1, 1000, stored_at=42)
        assert durable.get_item("cache_A") is not None

        store.write("A", "x" * 100, 1000)
        assert store.read("A").value == "x" * 100
        # A restart must not bring back the value the last write replaced
        assert EntryStore(durable).read("A") is None

    def test_unserializable_value_kept_in_memory(self, store, durable):
        store.write("A", {1, 2, 3}, 1000)  # sets are not JSON
        assert store.read("A").value == {1, 2, 3}
        assert durable.get_item("cache_A") is None

    def test_unavailable_storage_degrades_to_memory(self, broken_durable):
        store = EntryStore(broken_durable)
        store.write("A", 1, 1000)
        assert store.read("A").value == 1
        assert store.read("missing") is None
        assert store.delete("A") is True
        assert store.clear_all() == 0


class TestDeletion:
    """delete() and clear_all() across both tiers."""

    def test_delete_removes_both_tiers(self, store, durable):
        store.write("A", 1, 1000)
        assert store.delete("A") is True
        assert store.read("A") is None
        assert durable.get_item("cache_A") is None

    def test_delete_is_idempotent(self, store):
        assert store.delete("never-written") is False
        assert store.delete("never-written") is False

    def test_clear_all_keeps_foreign_durable_data(self, store, durable):
        durable.set_item("user", '{"id": 7}')
        durable.set_item("cachefoo", "unrelated")
        store.write("A", 1, 1000)
        store.write("B", 2, 1000)

        assert store.clear_all() == 2
        assert store.keys() == []
        assert durable.keys("cache_") == []
        assert sorted(durable.keys()) == ["cachefoo", "user"]

    def test_clear_all_removes_unpromoted_records(self, durable):
        EntryStore(durable).write("A", 1, 1000)
        restarted = EntryStore(durable)
        restarted.clear_all()
        assert restarted.read("A") is None
