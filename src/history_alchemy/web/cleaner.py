"""Convert sanitized HTML to markdown-style text and strip residual noise."""

from __future__ import annotations

import functools
import logging
import re

logger = logging.getLogger(__name__)

# Lines matching these are dropped when short enough to be boilerplate.
BOILERPLATE_PATTERNS = [
    re.compile(r"unsubscribe", re.I),
    re.compile(r"view (?:this email |it )?in (?:your )?browser", re.I),
    re.compile(r"click here to view", re.I),
    re.compile(r"copyright|\(c\)\s*\d{4}|©", re.I),
    re.compile(r"all rights reserved", re.I),
    re.compile(r"privacy policy|terms of (?:service|use)", re.I),
    re.compile(r"legal notice", re.I),
]
BOILERPLATE_MAX_LINE = 150

GATED_PATTERNS = [
    re.compile(p, re.I)
    for p in (
        r"subscribe to (?:read|continue|unlock)",
        r"subscribers? only",
        r"this (?:article|content|story) is (?:only )?(?:available )?(?:for|to) (?:subscribers|members)",
        r"(?:sign|log) ?in to (?:read|continue|view)",
        r"create a free account to (?:read|continue)",
        r"already a (?:subscriber|member)\?",
        r"you(?:'ve| have) (?:reached|used) (?:your|all your) (?:free )?(?:article )?limit",
        r"to continue reading,? (?:please )?(?:subscribe|sign in|log in|register)",
        r"register (?:now )?to (?:read|continue)",
        r"please enable javascript to (?:view|read|continue)",
    )
]

LINK_WALL_MIN_LINES = 6
_PURE_LINK_LINE = re.compile(r"^\s*(?:[-*+]\s+|\d+\.\s+)?\[[^\]]*\]\([^)]*\)\s*$")
_EMPTY_ANCHOR = re.compile(r"(?<!!)\[\s*\]\([^)]*\)")
_BLANK_RUN = re.compile(r"\n{3,}")

# Path segments suggesting an image is part of the article, not chrome.
CONTENT_IMAGE_SEGMENTS = (
    "/uploads/", "/images/", "/image/", "/media/", "/photos/", "/photo/",
    "/figures/", "/figure/", "/wp-content/", "/content/", "/assets/articles/",
)
_GENERIC_ALT = {"image", "img", "icon", "logo", "spacer", "pixel", "banner", "photo", "picture"}
MIN_ALT_LENGTH = 5


def is_content_image(src: str, alt: str) -> bool:
    """Keep images with a descriptive alt or a content-looking path."""
    alt = (alt or "").strip()
    if len(alt) >= MIN_ALT_LENGTH and alt.lower() not in _GENERIC_ALT:
        return True
    lower = (src or "").lower()
    return any(segment in lower for segment in CONTENT_IMAGE_SEGMENTS)


@functools.lru_cache(maxsize=1)
def _converter_class():
    try:
        from markdownify import MarkdownConverter
    except ImportError:
        raise ImportError(
            "markdownify is required for content cleaning. "
            "Install with: pip install history-alchemy[web]"
        )

    class ArticleConverter(MarkdownConverter):
        """Markdown conversion that drops decorative images and empty links."""

        def convert_img(self, el, text, *args, **kwargs):
            src = el.get("src", "")
            alt = el.get("alt", "")
            if not src or not is_content_image(src, alt):
                return ""
            return f"![{alt.strip()}]({src})"

        def convert_a(self, el, text, *args, **kwargs):
            text = (text or "").strip()
            href = el.get("href", "")
            if not text:
                return ""
            if not href or href.startswith("#") or href.lower().startswith("javascript:"):
                return text
            return f"[{text}]({href})"

    return ArticleConverter


def html_to_text(html: str) -> str:
    """Heading/link/list-preserving markdown conversion."""
    if not html:
        return ""
    converter = _converter_class()(heading_style="ATX", bullets="-")
    return converter.convert(html)


def _drop_boilerplate(lines: list[str]) -> list[str]:
    return [
        line
        for line in lines
        if not (
            len(line.strip()) < BOILERPLATE_MAX_LINE
            and any(p.search(line) for p in BOILERPLATE_PATTERNS)
        )
    ]


def _drop_link_walls(lines: list[str]) -> list[str]:
    """Suppress runs of LINK_WALL_MIN_LINES or more lines that are only a link.

    Blank lines inside a run neither break it nor count toward it.
    """
    out: list[str] = []
    run: list[str] = []
    run_links = 0

    def flush() -> None:
        nonlocal run, run_links
        if run_links < LINK_WALL_MIN_LINES:
            out.extend(run)
        else:
            # Keep the paragraph break the wall occupied.
            out.append("")
        run, run_links = [], 0

    for line in lines:
        if _PURE_LINK_LINE.match(line):
            run.append(line)
            run_links += 1
        elif not line.strip() and run:
            run.append(line)
        else:
            if run:
                flush()
            out.append(line)
    if run:
        flush()
    return out


def clean_text(text: str) -> str:
    """Remove residual line-level noise from converted text."""
    if not text:
        return ""
    text = _EMPTY_ANCHOR.sub("", text)
    lines = [line.rstrip() for line in text.split("\n")]
    lines = _drop_boilerplate(lines)
    lines = _drop_link_walls(lines)
    text = "\n".join(lines)
    text = _BLANK_RUN.sub("\n\n", text)
    return text.strip()


def clean_html(html: str) -> str:
    """Sanitized HTML to cleaned structured text."""
    return clean_text(html_to_text(html))


def is_gated_content(text: str) -> bool:
    """True if the text reads like a paywall or login wall."""
    if not text:
        return False
    return any(p.search(text) for p in GATED_PATTERNS)


def sanitize_llm_tokens(text: str) -> str:
    """Neutralize chat-template control tokens before text reaches a model."""
    text = text.replace("<|", "< |").replace("|>", "| >")
    text = re.sub(r"\[INST\]", "[ INST ]", text, flags=re.I)
    return re.sub(r"\[/INST\]", "[ /INST ]", text, flags=re.I)
