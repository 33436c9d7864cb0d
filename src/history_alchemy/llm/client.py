"""Claude API client wrapper with retry logic."""

from __future__ import annotations

import logging
import os
import time

from history_alchemy.exceptions import LLMError

logger = logging.getLogger(__name__)


DEFAULT_MODEL = os.environ.get("DEFAULT_LLM_MODEL", "claude-haiku-4-5-20251001")


def _require_key(api_key: str | None) -> None:
    if not api_key and not os.environ.get("ANTHROPIC_API_KEY"):
        raise LLMError(
            "Anthropic API key is required. "
            "Pass it directly or set ANTHROPIC_API_KEY in your environment."
        )


class LLMClient:
    """Synchronous wrapper around the Anthropic SDK."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        max_retries: int = 3,
        timeout: float = 60.0,
    ):
        _require_key(api_key)
        try:
            from anthropic import Anthropic
        except ImportError:
            raise ImportError(
                "anthropic is required for LLMClient. "
                "Install with: pip install history-alchemy[llm]"
            )
        self._client = Anthropic(api_key=api_key or None, timeout=timeout, max_retries=0)
        self.model = model
        self.max_retries = max_retries

    @property
    def client(self):
        """Access the underlying Anthropic SDK client for advanced usage."""
        return self._client

    def generate(
        self,
        system_prompt: str,
        user_content: str,
        max_tokens: int = 1024,
        temperature: float = 0.2,
        model: str | None = None,
    ) -> dict:
        """Send a message to Claude and return the response with usage info.

        Returns:
            dict with keys: text, input_tokens, output_tokens, model
        """
        from anthropic import APIError, APITimeoutError, RateLimitError

        use_model = model or self.model
        for attempt in range(self.max_retries):
            try:
                response = self._client.messages.create(
                    model=use_model,
                    max_tokens=max_tokens,
                    temperature=temperature,
                    system=system_prompt,
                    messages=[{"role": "user", "content": user_content}],
                )
                return {
                    "text": response.content[0].text if response.content else "",
                    "input_tokens": response.usage.input_tokens,
                    "output_tokens": response.usage.output_tokens,
                    "model": use_model,
                }
            except RateLimitError:
                wait = 2 ** (attempt + 1)
                logger.warning(f"Rate limited, retrying in {wait}s (attempt {attempt + 1})")
                time.sleep(wait)
            except APITimeoutError:
                wait = 2 ** attempt
                logger.warning(f"API timeout, retrying in {wait}s (attempt {attempt + 1})")
                time.sleep(wait)
            except APIError as e:
                raise LLMError(f"Claude API error: {e}") from e

        raise LLMError(f"Failed after {self.max_retries} retries")
