"""Tests for the Tier 2 headless renderer."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from history_alchemy.exceptions import RenderError
from history_alchemy.web.renderer import PageRenderer


def _fake_playwright(status=200, goto_error=None):
    page = MagicMock()
    page.goto = AsyncMock(return_value=MagicMock(status=status), side_effect=goto_error)
    page.content = AsyncMock(return_value="<html><body>rendered</body></html>")
    page.url = "https://example.com/after-js-redirect"

    browser = MagicMock()
    browser.new_page = AsyncMock(return_value=page)
    browser.close = AsyncMock()

    pw = MagicMock()
    pw.chromium.launch = AsyncMock(return_value=browser)

    manager = MagicMock()
    manager.__aenter__ = AsyncMock(return_value=pw)
    manager.__aexit__ = AsyncMock(return_value=False)
    return manager, browser, page


def test_render_returns_final_url_and_closes_browser():
    manager, browser, page = _fake_playwright()
    with patch("playwright.async_api.async_playwright", return_value=manager):
        result = asyncio.run(PageRenderer(timeout=1).render("https://example.com/start"))

    assert result.final_url == "https://example.com/after-js-redirect"
    assert "rendered" in result.html
    page.goto.assert_awaited_once_with(
        "https://example.com/start", wait_until="networkidle", timeout=1000
    )
    browser.close.assert_awaited_once()


def test_render_http_error_closes_browser():
    manager, browser, _ = _fake_playwright(status=404)
    with patch("playwright.async_api.async_playwright", return_value=manager):
        with pytest.raises(RenderError, match="404"):
            asyncio.run(PageRenderer().render("https://example.com/missing"))
    browser.close.assert_awaited_once()


def test_render_navigation_failure_wrapped():
    manager, browser, _ = _fake_playwright(goto_error=TimeoutError("nav timeout"))
    with patch("playwright.async_api.async_playwright", return_value=manager):
        with pytest.raises(RenderError, match="nav timeout"):
            asyncio.run(PageRenderer().render("https://example.com/slow"))
    browser.close.assert_awaited_once()
