"""In-memory caches with TTL expiry and LRU eviction.

This module implements the generic Cache and its three specializations used
by the sync engine:
- FileCache: raw file content and file stats
- MergeCache: diff and merge outputs from the merge/diff collaborator
- ValidationCache: validation results and parsed feature data, keyed by
  content hash so edits invalidate naturally

Expiry is enforced two ways. When an asyncio loop is running, set() schedules
a loop.call_later() callback that drops the entry. get() also checks expiry
on read, so entries expire correctly when no loop is running.
"""

import asyncio
import json
import logging
import time
from typing import Any, Dict, Optional

from src.cache.models import CacheEntry, CacheStats
from src.core.events import EventBus, SyncEvents

logger = logging.getLogger(__name__)


class Cache:
    """Generic key/value cache with TTL (seconds) and LRU eviction.

    Example:
        >>> cache = Cache(max_size=2, default_ttl=60)
        >>> cache.set("a", 1)
        1
        >>> cache.get("a")
        1
    """

    def __init__(
        self,
        max_size: int = 1000,
        default_ttl: float = 300.0,
        name: str = "cache",
        events: Optional[EventBus] = None,
    ):
        """Initialize cache.

        Args:
            max_size: Maximum number of entries before LRU eviction
            default_ttl: Default time to live in seconds (<= 0 disables expiry)
            name: Name used in events and stats
            events: Event bus for cache:hit/miss/invalidated events
        """
        self.max_size = max_size
        self.default_ttl = default_ttl
        self.name = name
        self.events = events
        self.enabled = True
        self.hits = 0
        self.misses = 0
        self._entries: Dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and not entry.is_expired(time.monotonic())

    def get(self, key: str) -> Optional[Any]:
        """Look up a value.

        Returns:
            Cached value, or None when absent, expired or caching is disabled
        """
        if not self.enabled:
            return None

        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            self._emit(SyncEvents.CACHE_MISS, {"cache": self.name, "key": key})
            return None

        now = time.monotonic()
        if entry.is_expired(now):
            self.delete(key)
            self.misses += 1
            self._emit(
                SyncEvents.CACHE_MISS,
                {"cache": self.name, "key": key, "reason": "expired"},
            )
            return None

        entry.last_accessed = now
        # Keep dict order in sync with recency so LRU ties resolve correctly
        self._entries[key] = self._entries.pop(key)
        self.hits += 1
        self._emit(SyncEvents.CACHE_HIT, {"cache": self.name, "key": key})
        return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> Any:
        """Store a value.

        Args:
            key: Cache key
            value: Value to store
            ttl: Time to live in seconds (defaults to default_ttl)

        Returns:
            The stored value
        """
        if not self.enabled:
            return value

        ttl = self.default_ttl if ttl is None else ttl

        if key in self._entries:
            self._cancel_timer(self._entries.pop(key))
        elif len(self._entries) >= self.max_size:
            self._evict_lru()

        now = time.monotonic()
        entry = CacheEntry(value=value, created_at=now, last_accessed=now, ttl=ttl)
        self._entries[key] = entry

        if ttl > 0:
            entry.timer = self._schedule_expiry(key, entry, ttl)

        return value

    def delete(self, key: str) -> bool:
        """Remove an entry and cancel its expiry timer.

        Returns:
            True if an entry was removed
        """
        entry = self._entries.pop(key, None)
        if entry is None:
            return False
        self._cancel_timer(entry)
        return True

    def clear(self) -> None:
        """Remove all entries and cancel all pending timers."""
        for entry in self._entries.values():
            self._cancel_timer(entry)
        self._entries.clear()
        self._emit(
            SyncEvents.CACHE_INVALIDATED,
            {"cache": self.name, "reason": "manual-clear"},
        )

    def keys(self):
        return list(self._entries.keys())

    def get_stats(self) -> CacheStats:
        lookups = self.hits + self.misses
        return CacheStats(
            name=self.name,
            size=len(self._entries),
            max_size=self.max_size,
            hits=self.hits,
            misses=self.misses,
            hit_rate=self.hits / lookups if lookups else 0.0,
            keys=list(self._entries.keys()),
        )

    def _evict_lru(self) -> None:
        oldest_key = None
        oldest_time = float("inf")
        for key, entry in self._entries.items():
            if entry.last_accessed < oldest_time:
                oldest_time = entry.last_accessed
                oldest_key = key

        if oldest_key is not None:
            logger.debug(f"Cache {self.name}: evicting least recently used key {oldest_key}")
            self.delete(oldest_key)

    def _schedule_expiry(self, key: str, entry: CacheEntry, ttl: float) -> Optional[asyncio.TimerHandle]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop: expiry is enforced lazily by get()
            return None
        return loop.call_later(ttl, self._expire, key, entry)

    def _expire(self, key: str, entry: CacheEntry) -> None:
        # Only drop the entry this timer was scheduled for
        if self._entries.get(key) is entry:
            del self._entries[key]

    @staticmethod
    def _cancel_timer(entry: CacheEntry) -> None:
        if entry.timer is not None:
            entry.timer.cancel()
            entry.timer = None

    def _emit(self, event_name: str, data: Dict[str, Any]) -> None:
        if self.events is not None:
            self.events.emit(event_name, data)


class FileCache(Cache):
    """Cache for file content and file stats (500 entries, 2 minutes)."""

    def __init__(self, max_size: int = 500, default_ttl: float = 120.0, events: Optional[EventBus] = None):
        super().__init__(max_size=max_size, default_ttl=default_ttl, name="file", events=events)

    def cache_file_content(self, file_path: str, content: str) -> str:
        return self.set(f"file:{file_path}", content)

    def get_file_content(self, file_path: str) -> Optional[str]:
        return self.get(f"file:{file_path}")

    def cache_file_stats(self, file_path: str, stats: Dict[str, Any]) -> Dict[str, Any]:
        return self.set(f"stats:{file_path}", stats)

    def get_file_stats(self, file_path: str) -> Optional[Dict[str, Any]]:
        return self.get(f"stats:{file_path}")

    def invalidate_file(self, file_path: str) -> None:
        """Drop content and stats entries for a file."""
        self.delete(f"file:{file_path}")
        self.delete(f"stats:{file_path}")
        self._emit(
            SyncEvents.CACHE_INVALIDATED,
            {"cache": self.name, "file_path": file_path},
        )


class MergeCache(Cache):
    """Cache for diff and merge outputs (200 entries, 30 seconds)."""

    def __init__(self, max_size: int = 200, default_ttl: float = 30.0, events: Optional[EventBus] = None):
        super().__init__(max_size=max_size, default_ttl=default_ttl, name="merge", events=events)

    @staticmethod
    def _diff_key(file_a: str, file_b: str, options: Dict[str, Any]) -> str:
        return f"diff:{file_a}:{file_b}:{json.dumps(options, sort_keys=True)}"

    def cache_diff(self, file_a: str, file_b: str, options: Dict[str, Any], result: Any) -> Any:
        return self.set(self._diff_key(file_a, file_b, options), result)

    def get_diff(self, file_a: str, file_b: str, options: Dict[str, Any]) -> Optional[Any]:
        return self.get(self._diff_key(file_a, file_b, options))

    def cache_merge(self, base_file: str, their_file: str, strategy: str, result: Any) -> Any:
        return self.set(f"merge:{base_file}:{their_file}:{strategy}", result)

    def get_merge(self, base_file: str, their_file: str, strategy: str) -> Optional[Any]:
        return self.get(f"merge:{base_file}:{their_file}:{strategy}")


class ValidationCache(Cache):
    """Cache for validation results and parsed features (300 entries, 10 minutes)."""

    def __init__(self, max_size: int = 300, default_ttl: float = 600.0, events: Optional[EventBus] = None):
        super().__init__(max_size=max_size, default_ttl=default_ttl, name="validation", events=events)

    def cache_validation(self, file_path: str, file_hash: str, result: Any) -> Any:
        return self.set(f"validation:{file_path}:{file_hash}", result)

    def get_validation(self, file_path: str, file_hash: str) -> Optional[Any]:
        return self.get(f"validation:{file_path}:{file_hash}")

    def cache_feature_data(self, file_path: str, file_hash: str, data: Any) -> Any:
        return self.set(f"feature:{file_path}:{file_hash}", data)

    def get_feature_data(self, file_path: str, file_hash: str) -> Optional[Any]:
        return self.get(f"feature:{file_path}:{file_hash}")
