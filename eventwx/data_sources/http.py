"""Shared HTTP session for every upstream fetch."""
from __future__ import annotations

from typing import Any, Mapping, Optional

import requests_cache
from retry_requests import retry

from eventwx.config import settings
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/http")

# Short header-aware expiry; the TTL cache above this decides freshness.
cache_session = requests_cache.CachedSession(
    "eventwx_http", backend="memory", expire_after=60, cache_control=True
)
session = retry(cache_session, retries=3, backoff_factor=0.2)


def default_headers(accept: str = "application/json") -> dict:
    """Return request headers carrying the configured User-Agent."""
    return {"User-Agent": settings.nws_user_agent, "Accept": accept}


def fetch_json(url: str, *, params: Optional[Mapping[str, Any]] = None,
               accept: str = "application/json") -> Any:
    """GET a URL and decode its JSON body; HTTP errors raise requests.HTTPError."""
    logger.debug("GET", extra={"url": url})
    response = session.get(url, params=params, headers=default_headers(accept),
                           timeout=settings.http_timeout_seconds)
    response.raise_for_status()
    return response.json()


def fetch_text(url: str, *, params: Optional[Mapping[str, Any]] = None) -> str:
    """GET a URL and return its body as text."""
    logger.debug("GET", extra={"url": url})
    response = session.get(url, params=params, headers=default_headers("*/*"),
                           timeout=settings.http_timeout_seconds)
    response.raise_for_status()
    return response.text
