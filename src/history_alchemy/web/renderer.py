"""Tier 2: full headless-browser rendering with Playwright."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from history_alchemy.exceptions import RenderError
from history_alchemy.web.fetcher import USER_AGENT

logger = logging.getLogger(__name__)


@dataclass
class RenderedPage:
    html: str
    final_url: str


class PageRenderer:
    """Launches a private headless Chromium per call and always tears it down."""

    def __init__(self, timeout: float = 30.0, headless: bool = True):
        self.timeout = timeout
        self.headless = headless

    async def render(self, url: str) -> RenderedPage:
        try:
            from playwright.async_api import async_playwright
        except ImportError:
            raise ImportError(
                "playwright is required for PageRenderer. "
                "Install with: pip install history-alchemy[render]"
            )

        try:
            async with async_playwright() as pw:
                browser = await pw.chromium.launch(headless=self.headless)
                try:
                    page = await browser.new_page(user_agent=USER_AGENT)
                    response = await page.goto(
                        url, wait_until="networkidle", timeout=self.timeout * 1000
                    )
                    if response is not None and response.status >= 400:
                        raise RenderError(f"HTTP {response.status} rendering {url}")
                    # page.url includes client-side redirects the transport never saw.
                    return RenderedPage(html=await page.content(), final_url=page.url)
                finally:
                    await browser.close()
        except RenderError:
            raise
        except Exception as e:
            raise RenderError(f"Render failed: {e}") from e
