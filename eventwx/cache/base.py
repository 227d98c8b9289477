"""Shared protocol for TTL cache backends."""

from typing import Any, Optional, Protocol


class CacheService(Protocol):
    """Protocol for key/value caches with per-entry TTL and lazy expiry."""
    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None if missing or expired."""

    def put(self, key: str, value: Any, ttl_seconds: float) -> None:
        """Store a JSON-serializable value for `ttl_seconds`."""

    def delete(self, key: str) -> None:
        """Delete an entry without raising if it is absent."""

    def clear(self) -> None:
        """Drop every entry."""
