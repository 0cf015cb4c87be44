"""Coordinator for the file, merge and validation caches.

One CacheManager is built per sync run and injected into the components
that need it. There is no module-level instance.
"""

import logging
from typing import Any, Dict, Optional

from src.cache.cache import FileCache, MergeCache, ValidationCache
from src.core.events import EventBus, SyncEvents

logger = logging.getLogger(__name__)


class CacheManager:
    """Owns the three specialized caches and toggles them together.

    Attributes:
        file_cache: File content and stats
        merge_cache: Diff and merge outputs
        validation_cache: Validation results and parsed features
        enabled: Whether caching is active

    Example:
        >>> manager = CacheManager(events=EventBus())
        >>> manager.file_cache.cache_file_content("a.feature", "Feature: A")
        >>> manager.invalidate_file("a.feature")
    """

    def __init__(self, events: Optional[EventBus] = None, enabled: bool = True):
        self.events = events
        self.file_cache = FileCache(events=events)
        self.merge_cache = MergeCache(events=events)
        self.validation_cache = ValidationCache(events=events)
        self.enabled = True
        if not enabled:
            self.set_enabled(False)

    @property
    def caches(self):
        return (self.file_cache, self.merge_cache, self.validation_cache)

    def set_enabled(self, enabled: bool) -> None:
        """Enable or disable all caching. Disabling clears every cache."""
        self.enabled = enabled
        for cache in self.caches:
            cache.enabled = enabled
        if not enabled:
            self.clear_all()
        logger.debug(f"Caching {'enabled' if enabled else 'disabled'}")

    def clear_all(self) -> None:
        for cache in self.caches:
            cache.clear()

    def invalidate_file(self, file_path: str) -> int:
        """Remove every entry, in any cache, whose key mentions file_path.

        Keys are colon-separated, so the path must appear as a whole segment.

        Returns:
            Number of entries removed
        """
        needle = f":{file_path}:"
        removed = 0
        for cache in self.caches:
            for key in cache.keys():
                if needle in f"{key}:":
                    cache.delete(key)
                    removed += 1

        if self.events is not None:
            self.events.emit(
                SyncEvents.CACHE_INVALIDATED,
                {"file_path": file_path, "removed": removed},
            )
        logger.debug(f"Invalidated {removed} cache entries for {file_path}")
        return removed

    def get_stats(self) -> Dict[str, Any]:
        file_stats = self.file_cache.get_stats()
        merge_stats = self.merge_cache.get_stats()
        validation_stats = self.validation_cache.get_stats()
        return {
            "enabled": self.enabled,
            "file": file_stats.to_dict(),
            "merge": merge_stats.to_dict(),
            "validation": validation_stats.to_dict(),
            "total": {
                "entries": file_stats.size + merge_stats.size + validation_stats.size,
                "hits": file_stats.hits + merge_stats.hits + validation_stats.hits,
                "misses": file_stats.misses + merge_stats.misses + validation_stats.misses,
            },
        }
