"""In-memory TTL cache, the default backend."""

import threading
import time
from typing import Any, Callable, Optional

from eventwx.cache.base import CacheService
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="cache/in_memory_cache")


class InMemoryCache(CacheService):
    """Thread-safe dict of (value, expiry) pairs; entries are evicted when read after expiry."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        logger.debug("Initializing InMemoryCache")
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        """Return the value for `key`, evicting it if it has expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() > expires_at:
                self._entries.pop(key, None)
                logger.debug("Cache entry expired", extra={"key": key})
                return None
            return value

    def put(self, key: str, value: Any, ttl_seconds: float) -> None:
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl_seconds)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
