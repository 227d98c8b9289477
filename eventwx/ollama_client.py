"""Client for the local Ollama chat endpoint used by the key-points briefing."""

import time

import requests

from eventwx.config import settings
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="ollama_client")


class OllamaClient:
    """
    Non-streaming chat calls against `<base_url>/api/chat`.

    Connection errors and 5xx answers are retried `max_retries` times with a
    fixed backoff; anything still failing surfaces as RuntimeError so callers
    only have one exception type to turn into an error descriptor.
    """

    def __init__(self, base_url: str | None = None, model: str | None = None):
        self.url = (base_url or settings.ollama_base_url).rstrip("/") + "/api/chat"
        self.model = model or settings.ollama_model
        self.options = dict(settings.ollama_options)
        self.max_retries = settings.ollama_retries
        self.retry_backoff_sec = settings.ollama_retry_backoff_seconds
        self.timeout = settings.ollama_timeout_seconds

    def _post(self, payload: dict) -> requests.Response:
        """POST the payload, retrying transient failures."""
        attempts = self.max_retries + 1
        for attempt in range(1, attempts + 1):
            retry_left = attempt < attempts
            try:
                response = requests.post(self.url, json=payload, timeout=self.timeout)
            except requests.exceptions.RequestException as exc:
                logger.warning("Ollama request failed", extra={"attempt": attempt, "error": str(exc)})
                if not retry_left:
                    raise RuntimeError(f"Ollama unreachable at {self.url}: {exc}") from exc
            else:
                logger.info("Ollama answered", extra={
                    "status": response.status_code,
                    "seconds": round(response.elapsed.total_seconds(), 2),
                })
                if response.status_code == 200:
                    return response
                if response.status_code < 500 or not retry_left:
                    raise RuntimeError(
                        f"Ollama returned HTTP {response.status_code}: {(response.text or '')[:200]} "
                        f"(model={self.model})"
                    )
            time.sleep(self.retry_backoff_sec)
        raise RuntimeError("Ollama retry budget exhausted")

    def chat(self, messages: list[dict]) -> str:
        """Send one chat exchange and return the assistant's text."""
        response = self._post({
            "model": self.model,
            "messages": messages,
            "stream": False,
            "options": self.options,
        })
        try:
            body = response.json()
        except ValueError as exc:
            raise RuntimeError(f"Ollama returned non-JSON response: {response.text[:200]}") from exc

        content = (body.get("message") or {}).get("content", "")
        return content if isinstance(content, str) else str(content)


ollama_client = OllamaClient()
