"""Key to document store with TTL.

``DocumentStore`` is the interface the registration core persists pages
through; ``MemoryDocumentStore`` is the in-process implementation used by
the bridge server. Documents are stored serialized so every read hands out
a fresh copy.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

from constants import Constants

Document = Dict[str, Any]


class DocumentStore(Protocol):
    """Concurrency-safe key to document store with per-entry TTL."""

    def get(self, key: str) -> Optional[Document]:
        ...

    def put(self, key: str, document: Document, ttl: int) -> None:
        ...

    def invalidate(self, key: str) -> None:
        ...


@dataclass
class CacheEntry:
    """A single serialized document with TTL."""

    value: bytes
    expires_at: float
    created_at: float = field(default_factory=time.time)

    def is_expired(self) -> bool:
        """Check if this entry has expired."""
        return time.time() > self.expires_at


class MemoryDocumentStore:
    """In-memory TTL store for serialized JSON documents."""

    def __init__(
        self,
        max_entries: int = Constants.STORE_MAX_ENTRIES,
        max_bytes: int = Constants.STORE_MAX_BYTES,
    ):
        """Initialize the store.

        Args:
            max_entries: Entry count above which the oldest tenth is evicted.
            max_bytes: Total serialized size kept in memory.
        """
        self._cache: Dict[str, CacheEntry] = {}
        self._max_entries = max_entries
        self._max_bytes = max_bytes
        self._current_bytes = 0
        self._last_cleanup = time.time()
        self._cleanup_interval = 30

    def get(self, key: str) -> Optional[Document]:
        """Get a stored document, or None if missing or expired."""
        self._maybe_cleanup()

        entry = self._cache.get(key)
        if entry is None:
            return None

        if entry.is_expired():
            self._remove_entry(key)
            return None

        return json.loads(entry.value)

    def put(self, key: str, document: Document, ttl: int) -> None:
        """Store a document under ``key`` for ``ttl`` seconds."""
        self._maybe_cleanup()

        body = json.dumps(document, separators=(",", ":")).encode("utf-8")
        body_size = len(body)

        # Evict if needed to make room
        while self._current_bytes + body_size > self._max_bytes and self._cache:
            self._evict_oldest(1)

        if key in self._cache:
            self._remove_entry(key)

        self._cache[key] = CacheEntry(value=body, expires_at=time.time() + ttl)
        self._current_bytes += body_size

        if len(self._cache) > self._max_entries:
            self._evict_oldest(max(1, self._max_entries // 10))

    def invalidate(self, key: str) -> None:
        """Drop a stored document."""
        self._remove_entry(key)

    def clear(self) -> None:
        """Drop all stored documents."""
        self._cache.clear()
        self._current_bytes = 0

    def stats(self) -> Dict[str, Any]:
        """Get store statistics."""
        expired_count = sum(1 for e in self._cache.values() if e.is_expired())
        return {
            "total_entries": len(self._cache),
            "expired_entries": expired_count,
            "active_entries": len(self._cache) - expired_count,
            "current_bytes": self._current_bytes,
            "max_bytes": self._max_bytes,
            "max_entries": self._max_entries,
        }

    def _remove_entry(self, key: str) -> None:
        """Remove an entry and update byte count."""
        entry = self._cache.pop(key, None)
        if entry:
            self._current_bytes -= len(entry.value)

    def _maybe_cleanup(self) -> None:
        """Run cleanup if enough time has passed."""
        now = time.time()
        if now - self._last_cleanup > self._cleanup_interval:
            self._cleanup()
            self._last_cleanup = now

    def _cleanup(self) -> None:
        """Remove expired entries."""
        keys_to_remove = [key for key, entry in self._cache.items() if entry.is_expired()]
        for key in keys_to_remove:
            self._remove_entry(key)

    def _evict_oldest(self, count: int) -> None:
        """Evict the oldest entries."""
        sorted_keys = sorted(self._cache.keys(), key=lambda k: self._cache[k].created_at)
        for key in sorted_keys[:count]:
            self._remove_entry(key)
