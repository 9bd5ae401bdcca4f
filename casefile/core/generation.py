"""
Remote text generation.

One request, one response: no retries, no streaming, no caching. Every
failure reaches the caller as a GenerationError.
"""

from __future__ import annotations

import base64
import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional, Protocol, Set

import httpx

from .errors import GenerationBusy, GenerationError
from .llm import Config, LLMClient, get_config

logger = logging.getLogger(__name__)


class GenerationClient(Protocol):
    def send(self, prompt: str, kind: str = "chat") -> str:
        """Return generated text for `prompt`; `kind` is "chat" or "report"."""

    def summarize(self, prompt: str, data: bytes, mime_type: str) -> str:
        ...

    def health(self) -> bool:
        ...


def _require_text(text: Optional[str], kind: str) -> str:
    if not text or not text.strip():
        raise GenerationError(f"Empty {kind} response from the generator")
    return text


# =============================================================================
# BACKENDS
# =============================================================================

class LLMGenerationClient:
    """Calls the model provider directly through LLMClient."""

    def __init__(self, client: Optional[LLMClient] = None, config: Optional[Config] = None):
        self.config = config or get_config()
        self.client = client or LLMClient(self.config.default_model)

    def _max_tokens(self, kind: str) -> int:
        if kind == "report":
            return self.config.report_max_tokens
        return self.config.chat_max_tokens

    def send(self, prompt: str, kind: str = "chat") -> str:
        # Provider SDKs raise their own types; a missing API key surfaces as TypeError.
        try:
            text = self.client.complete(prompt, max_tokens=self._max_tokens(kind))
        except Exception as exc:
            logger.error("Error getting %s response from %s: %s", kind, self.client.model, exc)
            raise GenerationError(f"Failed to get {kind} response") from exc
        return _require_text(text, kind)

    def summarize(self, prompt: str, data: bytes, mime_type: str) -> str:
        try:
            text = self.client.complete_with_document(prompt, data, mime_type)
        except Exception as exc:
            logger.error("Error summarizing attachment with %s: %s", self.client.model, exc)
            raise GenerationError("Failed to summarize attachment") from exc
        return _require_text(text, "summary")

    def health(self) -> bool:
        return self.client.ping()


class HttpGenerationClient:
    """
    JSON-over-HTTP generation service.

    Endpoints: POST /chat and POST /report take {"prompt"} and answer
    {"text"}; POST /summarize takes {"prompt", "mime_type", "data"} with
    base64 data; GET /health answers {"status": "ok"} or a bare boolean.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        config = get_config()
        self.base_url = (base_url or config.service_url).rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout or config.request_timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def _post(self, path: str, payload: dict, kind: str) -> str:
        try:
            resp = self._client.post(path, json=payload)
            resp.raise_for_status()
            body = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Error calling %s%s: %s", self.base_url, path, exc)
            raise GenerationError(f"Failed to get {kind} response") from exc
        text = body.get("text") if isinstance(body, dict) else None
        return _require_text(text, kind)

    def send(self, prompt: str, kind: str = "chat") -> str:
        path = "/report" if kind == "report" else "/chat"
        return self._post(path, {"prompt": prompt}, kind)

    def summarize(self, prompt: str, data: bytes, mime_type: str) -> str:
        payload = {
            "prompt": prompt,
            "mime_type": mime_type,
            "data": base64.standard_b64encode(data).decode("ascii"),
        }
        return self._post("/summarize", payload, "summary")

    def health(self) -> bool:
        try:
            resp = self._client.get("/health")
            resp.raise_for_status()
            body = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Generation service health check failed: %s", exc)
            return False
        if isinstance(body, dict):
            return str(body.get("status", "")).lower() in {"ok", "true", "healthy"}
        return bool(body)


def create_generation_client(config: Optional[Config] = None) -> GenerationClient:
    """Pick the backend named by `generation.backend` in config.yaml."""
    config = config or get_config()
    if config.generation_backend == "http":
        return HttpGenerationClient(config.service_url, config.request_timeout)
    if config.generation_backend == "anthropic":
        return LLMGenerationClient(config=config)
    raise ValueError(f"Unknown generation backend: {config.generation_backend}")


# =============================================================================
# IN-FLIGHT GUARD
# =============================================================================

class GenerationSlots:
    """
    At most one generation request per record at a time.

    A second request for a record whose slot is taken is rejected with
    GenerationBusy, so a slow earlier response can never land after a newer
    one.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._busy: Set[str] = set()

    def is_busy(self, record_id: str) -> bool:
        with self._lock:
            return record_id in self._busy

    @contextmanager
    def hold(self, record_id: str) -> Iterator[None]:
        with self._lock:
            if record_id in self._busy:
                raise GenerationBusy(record_id)
            self._busy.add(record_id)
        try:
            yield
        finally:
            with self._lock:
                self._busy.discard(record_id)
