"""TTL cache backends."""

from .base import CacheService
from .disk import DiskCache
from .memory import InMemoryCache

__all__ = [
    "CacheService",
    "DiskCache",
    "InMemoryCache",
]
