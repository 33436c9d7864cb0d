"""Tiered content extraction: fast fetch first, full render as fallback."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from history_alchemy.exceptions import ExtractionError, RenderError, WebFetchError
from history_alchemy.web.cleaner import clean_html
from history_alchemy.web.fetcher import WebFetcher
from history_alchemy.web.renderer import PageRenderer
from history_alchemy.web.sanitizer import sanitize_html

logger = logging.getLogger(__name__)

MIN_CONTENT_LENGTH = 500


@dataclass
class ExtractionResult:
    content: str
    final_url: str
    tier: int


def extract_text(html: str) -> str:
    """Sanitize, then convert to cleaned structured text."""
    return clean_html(sanitize_html(html))


class ContentRouter:
    """Tier 1 (HTTP fetch) escalating once to Tier 2 (headless render).

    Each tier runs at most once per call. The returned ``final_url`` is the
    last redirect target actually fetched or rendered.
    """

    def __init__(
        self,
        fetcher: WebFetcher | None = None,
        renderer: PageRenderer | None = None,
        min_length: int = MIN_CONTENT_LENGTH,
        fetch_timeout: float = 5.0,
        render_timeout: float = 30.0,
    ):
        self.fetcher = fetcher or WebFetcher(timeout=fetch_timeout)
        self.renderer = renderer or PageRenderer(timeout=render_timeout)
        self.min_length = min_length
        # Outer deadlines; launching a browser or DNS can stall outside
        # the per-request timeouts.
        self.fetch_deadline = fetch_timeout * 2
        self.render_deadline = render_timeout + 15

    async def _tier1(self, url: str) -> ExtractionResult | None:
        try:
            page = await asyncio.wait_for(self.fetcher.fetch(url), self.fetch_deadline)
        except (WebFetchError, asyncio.TimeoutError) as e:
            logger.info("Tier 1 failed for %s: %s", url, str(e) or "timeout")
            return None

        content = extract_text(page.html)
        if len(content) > self.min_length:
            logger.info("Tier 1 success for %s (%d chars)", url, len(content))
            return ExtractionResult(content=content, final_url=page.final_url, tier=1)

        logger.info("Tier 1 yielded %d chars for %s, escalating", len(content), url)
        return None

    async def _tier2(self, url: str) -> ExtractionResult:
        try:
            page = await asyncio.wait_for(self.renderer.render(url), self.render_deadline)
        except asyncio.TimeoutError as e:
            raise ExtractionError(f"Failed to extract content from {url}: render timed out") from e
        except (RenderError, ImportError) as e:
            raise ExtractionError(f"Failed to extract content from {url}: {e}") from e

        content = extract_text(page.html)
        if not content:
            raise ExtractionError(f"Failed to extract content from {url}: empty render")
        logger.info("Tier 2 success for %s (%d chars)", url, len(content))
        return ExtractionResult(content=content, final_url=page.final_url, tier=2)

    async def extract(self, url: str) -> ExtractionResult:
        """Extract cleaned article text. Raises ExtractionError if both tiers fail."""
        result = await self._tier1(url)
        if result is not None:
            return result
        return await self._tier2(url)

    def extract_sync(self, url: str) -> ExtractionResult:
        """Synchronous wrapper around :meth:`extract`."""
        return asyncio.run(self.extract(url))
