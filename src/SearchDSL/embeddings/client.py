"""HTTP client for an Ollama-style embedding provider.

Each call is a fresh request: no retries and no caching.
"""

from __future__ import annotations

import time
from typing import Final, Mapping

import requests

from SearchDSL.utils.log import log

DEFAULT_BASE_URL = "http://localhost:11434"
DEFAULT_MODEL = "all-minilm"

# Output width per model; a static table, never queried from the provider.
MODEL_DIMENSIONS: Final[Mapping[str, int]] = {
    "all-minilm": 384,
    "nomic-embed-text": 768,
    "mxbai-embed-large": 1024,
    "snowflake-arctic-embed": 1024,
}


class ProviderError(Exception):
    """Base class for embedding provider failures."""


class ProviderUnreachable(ProviderError):
    """Connection refused, DNS failure or timeout."""


class ProviderBadResponse(ProviderError):
    """Non-2xx status or a payload without a usable ``embedding``."""


def truncate_text(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


class EmbeddingClient:
    """Turns text into fixed-width vectors for one model.

    The client holds a reusable HTTP session and is safe to share read-only
    between request threads.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        *,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Provider address, without the ``/api/embeddings`` path.
            model: Embedding model name.
            timeout: Per-request deadline in seconds; ``None`` waits forever.
            session: HTTP session to reuse; a new one is created if omitted.
        """
        if not base_url:
            raise ValueError("base_url cannot be empty")
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self._session = session or requests.Session()

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/api/embeddings"

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self._session.close()

    def __enter__(self) -> EmbeddingClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def for_model(self, model: str) -> EmbeddingClient:
        """Return a client for ``model`` sharing this client's address and session."""
        if model == self.model:
            return self
        return EmbeddingClient(self.base_url, model, timeout=self.timeout, session=self._session)

    def get_dimensions(self) -> int | None:
        """Return the known output width of the configured model, or None if unknown."""
        return MODEL_DIMENSIONS.get(self.model)

    def embed(self, text: str) -> list[float]:
        """Generate an embedding for ``text``.

        Args:
            text: Text to embed.

        Returns:
            The embedding vector.

        Raises:
            ProviderUnreachable: On connection failures and timeouts.
            ProviderBadResponse: On non-2xx status or a malformed payload.
        """
        log.info("Generating embedding for text (length: %d characters): %r", len(text), truncate_text(text, 50))
        started = time.perf_counter()

        try:
            response = self._session.post(
                self.endpoint,
                json={"model": self.model, "prompt": text},
                timeout=self.timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as exc:
            raise ProviderUnreachable(f"embedding provider unreachable at {self.endpoint}: {exc}") from exc

        if not response.ok:
            raise ProviderBadResponse(
                f"embedding provider returned HTTP {response.status_code}: {truncate_text(response.text, 200)}"
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderBadResponse(f"embedding provider returned invalid JSON: {exc}") from exc

        vector = data.get("embedding") if isinstance(data, dict) else None
        if not isinstance(vector, list) or not vector:
            raise ProviderBadResponse("embedding provider response has no embedding")
        if any(isinstance(v, bool) or not isinstance(v, (int, float)) for v in vector):
            raise ProviderBadResponse("embedding provider response contains non-numeric values")

        duration = time.perf_counter() - started
        log.debug("First 10 embedding values: %s", vector[:10])
        log.debug("Generated embedding: %d dimensions in %.3fs", len(vector), duration)
        return [float(v) for v in vector]
