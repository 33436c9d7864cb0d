"""Strip non-content DOM and extract the main article subtree.

Returns cleaned HTML (structure preserved), not text. Conversion to text
happens in :mod:`history_alchemy.web.cleaner`.
"""

from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

# Removed before anything else so no executable or machine-oriented
# content survives even if extraction fails later.
TOXIC_TAGS = [
    "script", "style", "noscript", "svg", "iframe", "embed", "object",
    "template", "canvas", "head", "meta", "link",
]

CODE_HIGHLIGHT_SELECTORS = [
    ".highlight", ".hljs", ".codehilite", ".prism-code", ".syntaxhighlighter",
    "pre[class*='language-']",
]

HYDRATION_SELECTORS = [
    "#__NEXT_DATA__", "#__NUXT_DATA__", "#__NUXT__", "#__APOLLO_STATE__",
    "[data-hydration-payload]", "[data-sveltekit-fetched]",
]

STRUCTURED_DATA_SELECTORS = [
    "[type='application/ld+json']", "[type='application/json']",
]

NOISE_SELECTORS = [
    "header", "footer", "nav", "aside", "form",
    "button", "input", "select", "textarea", "dialog",
    "[role='alert']", "[role='banner']", "[role='dialog']", "[role='navigation']",
    "[aria-hidden='true']", ".sr-only", ".visually-hidden", ".screen-reader-text",
    ".ad", ".ads", ".advert", ".advertisement", ".sponsored",
    ".social-share", ".share-buttons", "#cookie-banner", ".cookie-banner",
    ".newsletter-signup", ".related-posts",
]

_STRIP_ATTRS = {"style", "class", "id", "role"}
_STRIP_ATTR_PREFIXES = ("data-", "on", "aria-")

_LEAKED_JSON = re.compile(r"^\s*[\[{]\s*\"[^\"]{1,80}\"\s*:.{20,}[}\]]\s*;?\s*$", re.S)
# A rule is removed only when its prelude looks like a selector list: a bare
# tag must touch the brace, anything spaced from it needs a class, id,
# attribute or pseudo marker.
_SEL_MARKED = r"[\w\-*]*(?:[.#][\w\-]+|\[[^\]\n]*\]|::?[\w\-]+(?:\([^)\n]*\))?)+"
_SEL_ANY = r"(?:" + _SEL_MARKED + r"|[A-Za-z][\w\-]*|\*)"
_SEL_HEAD = r"(?:" + _SEL_MARKED + r"\s+|" + _SEL_ANY + r"\s*[,>+~]\s*)*"
_CSS_PRELUDE = r"(?:@[\w\-]+[^{};\n]*?|" + _SEL_HEAD + r"(?:" + _SEL_MARKED + r"\s*|" + _SEL_ANY + r"))"
_LEAKED_CSS = re.compile(r"(?<![\w\-.#@])" + _CSS_PRELUDE + r"\{[^{}]*?:[^{}]*?\}")
_HYDRATION_GLOBAL = re.compile(
    r"(?:self\.|window\.)?(?:__NEXT_DATA__|__NUXT__|__APOLLO_STATE__|__INITIAL_STATE__|"
    r"__PRELOADED_STATE__|__remixContext|__next_f)\s*(?:=|\.push\()[^\n]*"
)
_REGEX_FALLBACK = re.compile(r"<(script|style|code)\b[^>]*>[\s\S]*?</\1\s*>", re.I)

# Readability output with less visible text than this is treated as a miss.
MIN_READABLE_CHARS = 50


def _soup(html: str):
    try:
        from bs4 import BeautifulSoup
    except ImportError:
        raise ImportError(
            "beautifulsoup4 is required for DOM sanitization. "
            "Install with: pip install history-alchemy[web]"
        )
    return BeautifulSoup(html, "html.parser")


def _remove(soup, selectors: list[str]) -> int:
    removed = 0
    for selector in selectors:
        for el in soup.select(selector):
            if el.decomposed:
                continue
            el.decompose()
            removed += 1
    return removed


def _pre_clean(soup) -> int:
    removed = 0
    for el in soup.find_all(TOXIC_TAGS):
        if el.decomposed:
            continue
        el.decompose()
        removed += 1
    removed += _remove(soup, CODE_HIGHLIGHT_SELECTORS)
    removed += _remove(soup, HYDRATION_SELECTORS)
    removed += _remove(soup, STRUCTURED_DATA_SELECTORS)
    return removed


def _readability(html: str) -> str | None:
    """Main-content HTML via readability, or None if it finds nothing usable."""
    try:
        from readability import Document
    except ImportError:
        raise ImportError(
            "readability-lxml is required for DOM sanitization. "
            "Install with: pip install history-alchemy[web]"
        )
    try:
        summary = Document(html).summary(html_partial=True)
    except Exception as e:
        logger.debug("Readability failed: %s", e)
        return None
    if len(_soup(summary).get_text(strip=True)) < MIN_READABLE_CHARS:
        return None
    return summary


def _scrub_text(text: str) -> str:
    if _LEAKED_JSON.match(text):
        return ""
    text = _HYDRATION_GLOBAL.sub("", text)
    return _LEAKED_CSS.sub("", text)


def strip_attributes(html: str) -> str:
    """Drop attributes and text that leak machine state into the output."""
    from bs4 import NavigableString
    from bs4.element import Comment

    soup = _soup(html)
    for el in soup.find_all(["script", "style"]):
        el.decompose()
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()

    for tag in soup.find_all(True):
        for attr in list(tag.attrs):
            lower = attr.lower()
            if lower in _STRIP_ATTRS or lower.startswith(_STRIP_ATTR_PREFIXES):
                del tag.attrs[attr]

    for node in soup.find_all(string=True):
        if not isinstance(node, NavigableString):
            continue
        scrubbed = _scrub_text(str(node))
        if scrubbed != str(node):
            node.replace_with(scrubbed)

    return str(soup)


def sanitize_html(html: str) -> str:
    """Return the main article as clean HTML.

    Falls back to manual noise removal when readability finds nothing, and
    to a regex strip of script/style/code blocks if parsing blows up.
    """
    if not html:
        return ""

    try:
        soup = _soup(html)
        removed = _pre_clean(soup)
        logger.debug("Removed %d toxic elements", removed)

        content = _readability(str(soup))
        if content is None:
            _remove(soup, NOISE_SELECTORS)
            body = soup.body or soup
            content = body.decode_contents()

        return strip_attributes(content)
    except ImportError:
        raise
    except Exception as e:
        logger.warning("DOM parsing failed, falling back to regex strip: %s", e)
        return _REGEX_FALLBACK.sub("", html)
