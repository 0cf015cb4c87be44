"""Data models for the cache layer."""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class CacheEntry:
    """A single cached value.

    Attributes:
        value: Cached value
        created_at: Monotonic time the entry was stored
        last_accessed: Monotonic time of the last read or write
        ttl: Time to live in seconds (<= 0 means no time-based expiry)
        timer: Pending expiry callback, if one was scheduled
    """

    value: Any
    created_at: float
    last_accessed: float
    ttl: float
    timer: Optional[asyncio.TimerHandle] = None

    def is_expired(self, now: float) -> bool:
        if self.ttl <= 0:
            return False
        return now - self.created_at > self.ttl


@dataclass
class CacheStats:
    """Snapshot of a cache's counters.

    Attributes:
        name: Cache name
        size: Current number of entries
        max_size: Capacity
        hits: Successful lookups
        misses: Failed or expired lookups
        hit_rate: hits / (hits + misses), 0.0 when nothing was looked up
        keys: Keys currently stored
    """

    name: str
    size: int
    max_size: int
    hits: int
    misses: int
    hit_rate: float
    keys: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "size": self.size,
            "max_size": self.max_size,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hit_rate,
            "keys": list(self.keys),
        }
