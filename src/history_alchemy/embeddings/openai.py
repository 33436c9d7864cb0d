"""OpenAI-compatible embedding backend (OpenAI, LM Studio, vLLM)."""

from __future__ import annotations

import logging
import os
import time

from history_alchemy.embeddings.base import BaseEmbedder
from history_alchemy.exceptions import EmbeddingError

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
BATCH_SIZE = 100


class OpenAIEmbedder(BaseEmbedder):
    """``/v1/embeddings`` client with retry on rate limits."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "text-embedding-3-small",
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 30.0,
    ):
        api_key = api_key or os.environ.get("OPENAI_API_KEY")
        if not api_key:
            raise EmbeddingError(
                "OpenAI API key is required. "
                "Pass it directly or set OPENAI_API_KEY in your environment."
            )
        try:
            import httpx  # noqa: F401
        except ImportError:
            raise ImportError(
                "httpx is required for OpenAIEmbedder. "
                "Install with: pip install history-alchemy[embeddings]"
            )
        self.api_key = api_key
        self.model = model
        base_url = base_url.rstrip("/")
        self.base_url = base_url if base_url.endswith("/v1") else f"{base_url}/v1"
        self.timeout = timeout

    def _call_api(self, texts: list[str]) -> list[list[float]]:
        import httpx

        for attempt in range(MAX_RETRIES):
            try:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(
                        f"{self.base_url}/embeddings",
                        json={"input": texts, "model": self.model},
                        headers={"Authorization": f"Bearer {self.api_key}"},
                    )
                    response.raise_for_status()
                    data = response.json()
                    # Responses are not guaranteed to be in input order.
                    ordered = sorted(data["data"], key=lambda x: x["index"])
                    return [item["embedding"] for item in ordered]
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 429:
                    wait = 2 ** (attempt + 1)
                    logger.warning("Rate limited, retrying in %ss (attempt %d)", wait, attempt + 1)
                    time.sleep(wait)
                    continue
                raise EmbeddingError(f"Embedding request failed: {e}") from e
            except (httpx.HTTPError, KeyError, ValueError) as e:
                raise EmbeddingError(f"Embedding request failed: {e}") from e
        raise EmbeddingError(f"Embedding request failed after {MAX_RETRIES} retries")

    def embed(self, text: str) -> list[float]:
        return self._call_api([text])[0]

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        vectors: list[list[float]] = []
        for i in range(0, len(texts), BATCH_SIZE):
            vectors.extend(self._call_api(texts[i : i + BATCH_SIZE]))
        return vectors
