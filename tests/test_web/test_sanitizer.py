"""Tests for DOM sanitization."""

from unittest.mock import patch

from history_alchemy.web.sanitizer import sanitize_html, strip_attributes

ARTICLE = (
    "Python's asyncio library lets a single thread juggle thousands of sockets. "
    "This article walks through event loops, tasks and cancellation in detail."
)


def test_script_and_inline_style_removed():
    html = f"""
    <html><head><title>T</title><style>.x {{ color: blue }}</style></head>
    <body>
      <script>alert('tracking-pixel')</script>
      <article><p style="color:red">{ARTICLE}</p><p>{ARTICLE}</p></article>
    </body></html>
    """
    out = sanitize_html(html)
    assert "alert(" not in out
    assert "tracking-pixel" not in out
    assert "style=" not in out
    assert "asyncio" in out


def test_hydration_and_structured_data_removed():
    html = f"""
    <html><body>
      <div id="__next"><article><p>{ARTICLE}</p><p>{ARTICLE}</p></article></div>
      <script id="__NEXT_DATA__" type="application/json">{{"props": {{"secret": 1}}}}</script>
      <script type="application/ld+json">{{"@type": "NewsArticle"}}</script>
    </body></html>
    """
    out = sanitize_html(html)
    assert "secret" not in out
    assert "NewsArticle" not in out
    assert "event loops" in out


def test_fallback_removes_navigation_when_readability_finds_nothing():
    html = "<html><body><nav>Home About Contact</nav><p>Tiny body.</p></body></html>"
    out = sanitize_html(html)
    assert "Tiny body." in out
    assert "Home About Contact" not in out


def test_parse_failure_falls_back_to_regex():
    html = "<p>Keep me</p><script>var x = 1;</script><code>print(1)</code>"
    with patch("history_alchemy.web.sanitizer._pre_clean", side_effect=RuntimeError("bad markup")):
        out = sanitize_html(html)
    assert out == "<p>Keep me</p>"


def test_empty_input():
    assert sanitize_html("") == ""


def test_strip_attributes_removes_machine_state():
    html = (
        '<p data-track="1" onclick="go()" aria-label="z" id="main" class="c" role="note">'
        "Body text</p>"
        "<p>window.__NEXT_DATA__ = {\"page\": \"/\"}</p>"
        "<p>.btn{color:red;margin:0}</p>"
        "<!-- build 1234 -->"
    )
    out = strip_attributes(html)
    for needle in ("data-track", "onclick", "aria-label", "id=", "class=", "role=",
                   "__NEXT_DATA__", "color:red", "build 1234"):
        assert needle not in out
    assert "Body text" in out


def test_strip_attributes_drops_leaked_json_blob():
    out = strip_attributes('<div>{"user": {"id": 1, "name": "someone", "roles": []}}</div><p>Prose</p>')
    assert "someone" not in out
    assert "Prose" in out


def test_strip_attributes_keeps_prose_before_braces():
    html = (
        "<p>Configure it with foo { a: b } in the file.</p>"
        "<p>Buttons look fine. .btn, .nav a:hover {color:red}</p>"
        "<p>body{margin:0}</p>"
    )
    out = strip_attributes(html)
    assert "Configure it with foo { a: b } in the file." in out
    assert "Buttons look fine." in out
    assert "color:red" not in out
    assert "margin:0" not in out
