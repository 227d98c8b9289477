"""Disk-backed TTL cache: one JSON file per key under a cache directory."""

import hashlib
import json
import os
import tempfile
import time
from pathlib import Path
from typing import Any, Callable, Optional

from eventwx.cache.base import CacheService
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="cache/disk_cache")


def write_json_atomic(path: Path, payload: Any) -> None:
    """Write JSON to a temp file in the target directory, then replace the target."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(payload, handle)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class DiskCache(CacheService):
    """
    Cache entries survive restarts; expiry uses wall-clock time.

    Keys are hashed into file names so arbitrary strings are safe. A file
    that cannot be decoded is treated as a miss and removed.
    """

    def __init__(self, directory: str | Path, clock: Callable[[], float] = time.time) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._clock = clock
        logger.debug("Initializing DiskCache", extra={"directory": str(self.directory)})

    def _path(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.directory / f"{digest}.json"

    def get(self, key: str) -> Optional[Any]:
        path = self._path(key)
        try:
            with path.open("r", encoding="utf-8") as handle:
                record = json.load(handle)
            if not isinstance(record, dict):
                raise ValueError(f"expected a JSON object, got {type(record).__name__}")
            expires_at = float(record.get("expires_at", 0))
        except FileNotFoundError:
            return None
        except (OSError, TypeError, ValueError) as exc:
            logger.warning("Discarding unreadable cache file", extra={"key": key, "error": str(exc)})
            self.delete(key)
            return None

        if self._clock() > expires_at:
            self.delete(key)
            return None
        return record.get("value")

    def put(self, key: str, value: Any, ttl_seconds: float) -> None:
        record = {"key": key, "expires_at": self._clock() + ttl_seconds, "value": value}
        write_json_atomic(self._path(key), record)

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            pass

    def clear(self) -> None:
        for path in self.directory.glob("*.json"):
            try:
                path.unlink()
            except FileNotFoundError:
                continue
