"""
CacheManager - Async-compatible cache for aggregated price results.

Features:
- Memory-based cache with oldest-entry eviction
- TTL (Time To Live) evaluated lazily at read time
- Expired entries read as absent, never as a fallback value
- Async-safe operations, entries are replaced whole
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Generic, Iterable, TypeVar

from loguru import logger

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A single cache entry with metadata."""

    data: T
    timestamp: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        """Check if entry is past its TTL."""
        return now >= self.expires_at


@dataclass
class CacheResult(Generic[T]):
    """Result from cache lookup."""

    data: T
    from_cache: str  # 'memory'
    stored_at: datetime


class CacheManager:
    """
    Async-compatible cache manager with TTL.

    Usage:
        cache = CacheManager(max_size=1000, default_ttl=timedelta(hours=1))

        key = cache.generate_key("1", ["epic", "gog"])
        result = await cache.get(key)
        if result:
            return result.data

        data = await aggregate()
        await cache.set(key, data)
    """

    def __init__(
        self,
        prefix: str = "prices:",
        max_size: int = 1000,
        default_ttl: timedelta = timedelta(hours=1),
        debug: bool = False,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._memory: dict[str, CacheEntry[Any]] = {}
        self._prefix = prefix
        self._max_size = max_size
        self._default_ttl = default_ttl
        self._debug = debug
        self._clock = clock
        self._lock = asyncio.Lock()
        self._stats = CacheStats()

    @property
    def default_ttl(self) -> timedelta:
        return self._default_ttl

    def generate_key(self, game_id: str, stores: Iterable[str]) -> str:
        """Generate a cache key from a game id and its canonical store list."""
        return f"{self._prefix}{game_id}:{','.join(stores)}"

    async def get(self, key: str) -> CacheResult[Any] | None:
        """
        Get value from cache.

        Returns CacheResult if found and not expired, None otherwise.
        """
        async with self._lock:
            entry = self._memory.get(key)
            if entry is None:
                self._stats.misses += 1
                self._log(f"MISS: {key}")
                return None

            if entry.is_expired(self._clock()):
                del self._memory[key]
                self._stats.misses += 1
                self._stats.expirations += 1
                self._log(f"EXPIRED: {key}")
                return None

            self._stats.hits += 1
            self._log(f"HIT: {key}")
            return CacheResult(
                data=entry.data,
                from_cache="memory",
                stored_at=entry.timestamp,
            )

    async def set(self, key: str, data: Any, ttl: timedelta | None = None) -> None:
        """
        Set value in cache.

        Args:
            key: Cache key
            data: Data to cache
            ttl: Time to live (uses default if not specified)
        """
        ttl = ttl if ttl is not None else self._default_ttl
        now = self._clock()
        entry = CacheEntry(data=data, timestamp=now, expires_at=now + ttl)

        async with self._lock:
            if len(self._memory) >= self._max_size and key not in self._memory:
                self._evict_oldest()

            self._memory[key] = entry
            self._log(f"SET: {key} (TTL: {ttl.total_seconds()}s)")

    def _evict_oldest(self) -> None:
        """Evict the oldest entry. Caller holds the lock."""
        if not self._memory:
            return

        oldest_key = min(
            self._memory.keys(),
            key=lambda k: self._memory[k].timestamp,
        )
        del self._memory[oldest_key]
        self._stats.evictions += 1
        self._log(f"EVICT: {oldest_key}")

    def get_stats(self) -> "CacheStats":
        """Get cache statistics."""
        self._stats.size = len(self._memory)
        self._stats.max_size = self._max_size
        return self._stats

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[CacheManager] {message}")


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    expirations: int = 0
    evictions: int = 0
    size: int = 0
    max_size: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "expirations": self.expirations,
            "evictions": self.evictions,
            "size": self.size,
            "max_size": self.max_size,
            "hit_rate": f"{self.hit_rate:.2%}",
        }
