"""In-memory caching for file reads, merge runs and validation results."""

from src.cache.cache import Cache, FileCache, MergeCache, ValidationCache
from src.cache.cache_manager import CacheManager
from src.cache.models import CacheEntry, CacheStats

__all__ = [
    'Cache',
    'FileCache',
    'MergeCache',
    'ValidationCache',
    'CacheManager',
    'CacheEntry',
    'CacheStats',
]
