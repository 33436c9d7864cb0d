"""Ollama local embedding backend."""

from __future__ import annotations

import logging
import time

from history_alchemy.embeddings.base import BaseEmbedder
from history_alchemy.exceptions import EmbeddingError

logger = logging.getLogger(__name__)

MAX_RETRIES = 3


class OllamaEmbedder(BaseEmbedder):
    """Calls ``/api/embed``, retrying while the local server is unreachable."""

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "nomic-embed-text",
        timeout: float = 30.0,
    ):
        try:
            import httpx  # noqa: F401
        except ImportError:
            raise ImportError(
                "httpx is required for OllamaEmbedder. "
                "Install with: pip install history-alchemy[embeddings]"
            )
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout

    def _call_api(self, texts: list[str]) -> list[list[float]]:
        import httpx

        for attempt in range(MAX_RETRIES):
            try:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(
                        f"{self.base_url}/api/embed",
                        json={"model": self.model, "input": texts},
                    )
                    response.raise_for_status()
                    return response.json()["embeddings"]
            except (httpx.ConnectError, httpx.TimeoutException) as e:
                wait = 2 ** attempt
                logger.warning("Ollama unreachable (%s), retrying in %ss", e, wait)
                time.sleep(wait)
            except (httpx.HTTPError, KeyError, ValueError) as e:
                raise EmbeddingError(f"Ollama embedding failed: {e}") from e
        raise EmbeddingError(f"Ollama embedding failed after {MAX_RETRIES} retries")

    def embed(self, text: str) -> list[float]:
        return self._call_api([text])[0]

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        return self._call_api(texts)
