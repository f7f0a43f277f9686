"""In-memory TTL cache for API responses.

Bounded by item count and entry age. Expired entries are dropped lazily on
lookup and by a periodic sweep; when the cache grows past capacity the
oldest-stored entries are evicted first (insertion age, not LRU).
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

# Domain Layer Imports
from castkit.domain.interfaces.cache import CacheService
from castkit.domain.models.common import CacheKey

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITEMS = 1000
DEFAULT_TTL_SECONDS = 30 * 60  # 30 minutes

@dataclass
class CacheEntry:
    """Internal representation of a cache entry."""
    value: Any
    stored_at: float # Clock reading when the entry was written

class TTLCache(CacheService):
    """Size-capped in-memory cache with time-based expiry."""

    def __init__(
        self,
        max_items: int = DEFAULT_MAX_ITEMS,
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initializes the cache.

        Args:
            max_items: Capacity; a sweep runs once this many entries are stored.
            ttl: Entry lifetime in seconds. Also the periodic sweep interval.
            clock: Monotonic time source in seconds (injectable for tests).
        """
        if max_items < 1:
            raise ValueError("max_items must be at least 1")
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self.max_items = max_items
        self.ttl = ttl
        self._clock = clock
        self._lock = asyncio.Lock()
        self._sweeper: Optional[asyncio.Task] = None

        logger.info(f"TTLCache initialized (ttl={ttl}s, max={max_items})")

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.stored_at >= self.ttl

    def _prune(self) -> int:
        """Removes expired entries, then evicts oldest-stored if over capacity.

        Caller must hold the lock.
        """
        now = self._clock()
        expired_keys = [k for k, v in self._entries.items() if self._is_expired(v, now)]
        for k in expired_keys:
            del self._entries[k]
        removed = len(expired_keys)

        overflow = len(self._entries) - self.max_items
        if overflow > 0:
            # Overwrites refresh stored_at without moving the key, so sort instead of relying on dict order
            oldest = sorted(self._entries.items(), key=lambda item: item[1].stored_at)[:overflow]
            for k, _ in oldest:
                del self._entries[k]
            removed += overflow

        if removed:
            logger.debug(f"Cache sweep removed {removed} entries ({len(expired_keys)} expired), {len(self._entries)} left")
        return removed

    # --- CacheService Interface Implementation ---

    async def get(self, key: CacheKey) -> Optional[Any]:
        """Retrieves an item if present and not expired."""
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug(f"Cache miss for key: {key}")
                return None
            if self._is_expired(entry, self._clock()):
                del self._entries[key]
                logger.debug(f"Cache entry expired for key: {key}")
                return None
            logger.debug(f"Cache hit for key: {key}")
            return entry.value

    async def set(self, key: CacheKey, value: Any) -> None:
        """Stores an item, sweeping when the cache reaches capacity."""
        async with self._lock:
            self._entries[key] = CacheEntry(value=value, stored_at=self._clock())
            if len(self._entries) >= self.max_items:
                self._prune()
            logger.debug(f"Stored item in cache: key={key}")

    async def delete(self, key: CacheKey) -> None:
        async with self._lock:
            if self._entries.pop(key, None) is not None:
                logger.debug(f"Deleted item from cache: key={key}")

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()
        logger.info("Cleared in-memory cache.")

    async def sweep(self) -> int:
        """Runs expiry and capacity eviction now.

        Returns:
            The number of entries removed.
        """
        async with self._lock:
            return self._prune()

    # --- Periodic Sweep ---

    def start(self) -> None:
        """Starts the periodic sweep on the running event loop (idempotent)."""
        if self._sweeper is not None and not self._sweeper.done():
            return
        self._sweeper = asyncio.get_running_loop().create_task(self._sweep_periodically())
        logger.debug(f"Periodic cache sweep started (every {self.ttl}s)")

    async def stop(self) -> None:
        """Cancels the periodic sweep and waits for it to finish."""
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None
        logger.debug("Periodic cache sweep stopped")

    async def _sweep_periodically(self) -> None:
        while True:
            await asyncio.sleep(self.ttl)
            await self.sweep()
