"""Cache facade over the configured backend."""
from typing import Any, Optional

from eventwx.cache import CacheService, DiskCache, InMemoryCache
from eventwx.config import settings
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="cache_manager")


def _init_cache() -> CacheService:
    """Initialize the backing cache based on configuration."""
    logger.debug(f"Initializing cache: backend='{settings.cache_backend}'")
    if settings.cache_backend == "disk":
        try:
            cache = DiskCache(settings.cache_dir)
            logger.info("Using DiskCache", extra={"cache_dir": settings.cache_dir})
            return cache
        except OSError as exc:
            logger.warning("Falling back to InMemoryCache (cache dir unusable)", extra={"error": str(exc)})
    elif settings.cache_backend != "memory":
        logger.warning("Unknown cache backend; using memory", extra={"backend": settings.cache_backend})
    return InMemoryCache()


_cache: CacheService = _init_cache()


def use_in_memory_cache_for_tests() -> InMemoryCache:
    """Override the cache for tests to ensure isolation and determinism."""
    global _cache
    _cache = InMemoryCache()
    return _cache


def cache_get(key: str) -> Optional[Any]:
    """Return a cached value, or None when missing or expired."""
    return _cache.get(key)


def cache_put(key: str, value: Any, ttl_seconds: float) -> None:
    """Store a value under `key` for `ttl_seconds`."""
    _cache.put(key, value, ttl_seconds)


def cache_delete(key: str) -> None:
    _cache.delete(key)


def clear_cache() -> None:
    """Clear every cached entry (dev/testing)."""
    _cache.clear()
