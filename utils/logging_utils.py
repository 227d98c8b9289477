"""
Central logging configuration for the event weather dashboard.

Usage
-----
In an entrypoint (server, one-off script):

    from utils.logging_utils import setup_logging

    setup_logging(level="INFO", job_name="eventwx")

In a module:

    from utils.logging_utils import get_tagged_logger

    logger = get_tagged_logger(__name__, tag="nws_client")
    logger.warning("Alerts fetch failed", extra={"error": str(exc)})

Records carry a `job_name`, a component `tag` and a `context` dict built from
the call's `extra=`; the default format appends the context as key=value
pairs so upstream URLs, cache keys and error strings land on the same line.
"""

from __future__ import annotations

import logging
import logging.config
from typing import Any, Mapping, MutableMapping, Optional

# Until setup_logging() runs, fall back to a plain format so import-time
# messages are still visible.
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

DEFAULT_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(job_name)s | %(tag)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Chatty third-party loggers capped at WARNING.
QUIET_LOGGERS = ("urllib3", "requests_cache", "httpx", "uvicorn.access")

_CONFIGURED: bool = False


# ---------------------------------------------------------------------------
# Filters and formatter
# ---------------------------------------------------------------------------

class MaxLevelFilter(logging.Filter):
    """Pass only records at or below `max_level` (keeps WARNING+ off stdout)."""

    def __init__(self, max_level: int) -> None:
        super().__init__()
        self.max_level = max_level

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        return record.levelno <= self.max_level


class EnsureTagFilter(logging.Filter):
    """
    Guarantee `tag` and `context` attributes on every record.

    Records from a TaggedLoggerAdapter already have both; plain loggers
    (uvicorn, requests, third-party code) get the last segment of their
    logger name as tag, e.g. "uvicorn.error" -> "error", and an empty context.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if not hasattr(record, "tag"):
            name = getattr(record, "name", "")
            record.tag = name.split(".")[-1] if name else "-"
        if not isinstance(getattr(record, "context", None), dict):
            record.context = {}
        return True


class JobNameFilter(logging.Filter):
    """Stamp the process-wide `job_name` onto every record ("-" when unset)."""

    def __init__(self, job_name: Optional[str] = None) -> None:
        super().__init__()
        self._job_name = job_name or "-"

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if not hasattr(record, "job_name"):
            record.job_name = self._job_name
        return True


class ContextFormatter(logging.Formatter):
    """Standard formatter that appends the record's context as `key=value` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = getattr(record, "context", None)
        if context:
            pairs = " ".join(f"{key}={value!r}" for key, value in context.items())
            line = f"{line} | {pairs}"
        return line


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------

class TaggedLoggerAdapter(logging.LoggerAdapter):
    """
    LoggerAdapter that keeps per-call `extra=` values.

    The stock adapter replaces a call's extra with its own; this one nests
    the call's values under `record.context` (so keys like "name" cannot
    collide with LogRecord attributes) and sets `record.tag`.
    """

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        context = dict(kwargs.pop("extra", None) or {})
        kwargs["extra"] = {"tag": self.extra["tag"], "context": context}
        return msg, kwargs


def get_tagged_logger(name: str, *, tag: Optional[str] = None) -> TaggedLoggerAdapter:
    """
    Return a logger adapter for `name` tagged with a component label.

    The tag defaults to the last segment of `name`, e.g.
    "eventwx.data_sources.nws_client" -> "nws_client".
    """
    if tag is None:
        tag = name.split(".")[-1]
    return TaggedLoggerAdapter(logging.getLogger(name), {"tag": tag})


# ---------------------------------------------------------------------------
# Config builder and setup
# ---------------------------------------------------------------------------

def build_logging_config(
    *,
    level: str | int = "INFO",
    log_format: str = DEFAULT_LOG_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
    job_name: Optional[str] = None,
) -> Mapping[str, Any]:
    """
    Build a dictConfig mapping: DEBUG/INFO to stdout, WARNING+ to stderr.

    Both handlers share the tag/job filters and the context formatter.
    """
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "ensure_tag": {"()": EnsureTagFilter},
            "job_name": {"()": JobNameFilter, "job_name": job_name},
            "stdout_max_info": {"()": MaxLevelFilter, "max_level": logging.INFO},
        },
        "formatters": {
            "context": {
                "()": ContextFormatter,
                "fmt": log_format,
                "datefmt": date_format,
            },
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "context",
                "filters": ["ensure_tag", "job_name", "stdout_max_info"],
                "level": "DEBUG",
                "stream": "ext://sys.stdout",
            },
            "stderr": {
                "class": "logging.StreamHandler",
                "formatter": "context",
                "filters": ["ensure_tag", "job_name"],
                "level": "WARNING",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
        "root": {
            "level": level,
            "handlers": ["stdout", "stderr"],
        },
    }


def setup_logging(
    *,
    level: str | int = "INFO",
    log_format: str = DEFAULT_LOG_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
    job_name: Optional[str] = None,
    override_existing: bool = False,
) -> None:
    """Configure logging once per process; later calls are no-ops unless `override_existing`."""
    global _CONFIGURED

    if _CONFIGURED and not override_existing:
        return

    logging.config.dictConfig(
        build_logging_config(
            level=level,
            log_format=log_format,
            date_format=date_format,
            job_name=job_name,
        )
    )
    _CONFIGURED = True
