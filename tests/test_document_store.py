"""Tests for the in-memory document store."""

import time
from unittest.mock import patch

from registration.store import MemoryDocumentStore


class TestMemoryDocumentStore:
    """Tests for MemoryDocumentStore."""

    def test_put_and_get(self):
        store = MemoryDocumentStore()
        store.put("k", {"@id": "k", "count": 1}, ttl=60)
        assert store.get("k") == {"@id": "k", "count": 1}

    def test_missing_key(self):
        assert MemoryDocumentStore().get("nope") is None

    def test_reads_are_copies(self):
        """Mutating a read or the original does not change the stored document."""
        store = MemoryDocumentStore()
        original = {"items": [{"@id": "a"}]}
        store.put("k", original, ttl=60)

        original["items"].append({"@id": "b"})
        first = store.get("k")
        first["items"].clear()

        assert store.get("k") == {"items": [{"@id": "a"}]}

    def test_expired_entries_dropped(self):
        store = MemoryDocumentStore()
        now = time.time()
        with patch("registration.store.time.time", return_value=now):
            store.put("k", {"a": 1}, ttl=10)
        with patch("registration.store.time.time", return_value=now + 11):
            assert store.get("k") is None
        assert store.stats()["total_entries"] == 0

    def test_overwrite_replaces_document(self):
        store = MemoryDocumentStore()
        store.put("k", {"v": 1}, ttl=60)
        store.put("k", {"v": 2}, ttl=60)
        assert store.get("k") == {"v": 2}
        assert store.stats()["total_entries"] == 1

    def test_entry_limit_evicts_oldest(self):
        store = MemoryDocumentStore(max_entries=10)
        for n in range(11):
            with patch("registration.store.time.time", return_value=1000.0 + n):
                store.put(f"k{n}", {"n": n}, ttl=10_000)
        with patch("registration.store.time.time", return_value=1020.0):
            assert store.get("k0") is None
            assert store.get("k10") == {"n": 10}

    def test_byte_limit_evicts(self):
        store = MemoryDocumentStore(max_bytes=40)
        store.put("a", {"payload": "x" * 10}, ttl=60)
        store.put("b", {"payload": "y" * 10}, ttl=60)
        assert store.get("a") is None
        assert store.get("b") == {"payload": "y" * 10}

    def test_invalidate_and_clear(self):
        store = MemoryDocumentStore()
        store.put("a", {}, ttl=60)
        store.put("b", {}, ttl=60)
        store.invalidate("a")
        assert store.get("a") is None
        store.clear()
        assert store.stats()["current_bytes"] == 0
        assert store.get("b") is None

    def test_stats(self):
        store = MemoryDocumentStore(max_entries=5, max_bytes=1024)
        store.put("a", {"x": 1}, ttl=60)
        stats = store.stats()
        assert stats["total_entries"] == 1
        assert stats["active_entries"] == 1
        assert stats["max_entries"] == 5
        assert stats["max_bytes"] == 1024
        assert stats["current_bytes"] > 0
