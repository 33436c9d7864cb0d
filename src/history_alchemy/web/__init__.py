"""Content extraction: fetch/render tiers, DOM sanitizer and text cleaner."""

from history_alchemy.web.cleaner import clean_html, clean_text, html_to_text, is_gated_content
from history_alchemy.web.fetcher import WebFetcher
from history_alchemy.web.renderer import PageRenderer
from history_alchemy.web.router import ContentRouter, ExtractionResult, extract_text
from history_alchemy.web.sanitizer import sanitize_html

__all__ = [
    "ContentRouter",
    "ExtractionResult",
    "WebFetcher",
    "PageRenderer",
    "sanitize_html",
    "html_to_text",
    "clean_text",
    "clean_html",
    "extract_text",
    "is_gated_content",
]
