"""URL canonicalization and classification used for deduplication."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field, replace
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

# Tracking parameters, grouped by the family of sites/tools that emit them.
TRACKING_PARAMS_BY_FAMILY: dict[str, frozenset[str]] = {
    "google": frozenset({
        "utm_source", "utm_medium", "utm_campaign", "utm_term", "utm_content",
        "utm_id", "gclid", "gclsrc", "dclid", "gbraid", "wbraid", "_ga", "_gl",
    }),
    "facebook": frozenset({
        "fbclid", "fb_action_ids", "fb_action_types", "fb_source", "fb_ref",
    }),
    "twitter": frozenset({"twclid", "s", "t", "ref_src", "ref_url"}),
    "microsoft": frozenset({"msclkid"}),
    "email": frozenset({
        "mc_cid", "mc_eid", "oly_enc_id", "oly_anon_id",
        "_hsenc", "_hsmi", "hsctatracking",
    }),
    "matomo": frozenset({"pk_campaign", "pk_kwd", "pk_source"}),
    "affiliate": frozenset({
        "zanpid", "irclickid", "affiliate", "affiliate_id", "aff_id",
        "clickid", "click_id",
    }),
    "referral": frozenset({
        "ref", "source", "src", "campaign", "medium", "share", "shared", "via",
    }),
    "session": frozenset({
        "sessionid", "session_id", "sid", "userid", "user_id", "uid", "token", "auth",
    }),
    "generic": frozenset({"trk", "tracking", "track"}),
}

# First path segment that marks an app/utility surface rather than content.
NON_CONTENT_PREFIXES = frozenset({
    "api", "graphql", "_next", "admin", "dashboard", "manage",
    "oauth", "callback", "sso", "auth", "search", "results",
    "account", "profile", "settings", "preferences",
})

# Path segments that mark a non-content page wherever they appear.
NON_CONTENT_SEGMENTS = frozenset({
    "login", "signin", "sign-in", "signup", "sign-up", "register",
    "logout", "signout", "sign-out",
    "cart", "checkout", "basket", "bag",
})

NON_CONTENT_EXTENSIONS = frozenset({
    ".json", ".xml", ".js", ".css", ".map",
    ".png", ".jpg", ".jpeg", ".gif", ".svg", ".ico", ".webp",
    ".woff", ".woff2", ".ttf", ".eot",
    ".pdf", ".zip", ".gz",
})

SHORTENER_DOMAINS = frozenset({
    "bit.ly", "t.co", "tinyurl.com", "goo.gl", "ow.ly", "buff.ly", "lnkd.in",
    "is.gd", "rebrand.ly", "t.ly", "cutt.ly", "shorturl.at", "tiny.cc", "rb.gy",
    "dlvr.it", "fb.me", "amzn.to", "trib.al", "redd.it", "youtu.be",
})

REDIRECT_MARKERS = ("/redirect", "/out?", "/l.php", "/click?", "url=")

# URLs shorter than this are treated as likely redirects when merging.
SHORT_URL_MAX_LENGTH = 30

DEFAULT_PORTS = {80, 443}


@dataclass(frozen=True)
class UrlRules:
    """Lists driving normalization and non-content classification.

    Kept as data so deployments can extend them without touching the
    algorithms below.
    """

    tracking_params: frozenset[str] = field(
        default_factory=lambda: frozenset().union(*TRACKING_PARAMS_BY_FAMILY.values())
    )
    tracking_prefixes: tuple[str, ...] = ("utm_",)
    non_content_prefixes: frozenset[str] = NON_CONTENT_PREFIXES
    non_content_segments: frozenset[str] = NON_CONTENT_SEGMENTS
    non_content_extensions: frozenset[str] = NON_CONTENT_EXTENSIONS
    shortener_domains: frozenset[str] = SHORTENER_DOMAINS

    def extend(self, **extra: list[str] | set[str]) -> "UrlRules":
        """Return a copy with additional entries merged into the named lists."""
        changes = {}
        for name, values in extra.items():
            current = getattr(self, name)
            if isinstance(current, tuple):
                changes[name] = current + tuple(v.lower() for v in values)
            else:
                changes[name] = current | {v.lower() for v in values}
        return replace(self, **changes)


DEFAULT_RULES = UrlRules()


def _is_tracking_param(key: str, rules: UrlRules) -> bool:
    lower = key.lower()
    return lower in rules.tracking_params or lower.startswith(rules.tracking_prefixes)


def normalize(url: str, rules: UrlRules = DEFAULT_RULES) -> str:
    """Canonicalize a URL for deduplication. Returns the input if it can't be parsed."""
    try:
        parts = urlsplit(url.strip())
        if not parts.scheme or not parts.netloc or not parts.hostname:
            return url

        host = parts.hostname
        if ":" in host:
            host = f"[{host}]"
        port = parts.port
        netloc = host if port is None or port in DEFAULT_PORTS else f"{host}:{port}"
        if "@" in parts.netloc:
            netloc = parts.netloc.rsplit("@", 1)[0] + "@" + netloc

        path = parts.path or "/"
        if len(path) > 1 and path.endswith("/"):
            path = path[:-1]

        params = [
            (key, value)
            for key, value in parse_qsl(parts.query, keep_blank_values=True)
            if not _is_tracking_param(key, rules)
        ]
        params.sort(key=lambda kv: kv[0])

        return urlunsplit((parts.scheme.lower(), netloc, path, urlencode(params), ""))
    except ValueError:
        return url


def get_canonical(url: str) -> str:
    """Scheme, host and path only. Useful for aggressive matching."""
    try:
        parts = urlsplit(url.strip())
        if not parts.scheme or not parts.netloc:
            return url
        path = parts.path
        if len(path) > 1 and path.endswith("/"):
            path = path[:-1]
        return f"{parts.scheme.lower()}://{parts.netloc.lower()}{path}"
    except ValueError:
        return url


def get_domain(url: str) -> str:
    try:
        return (urlsplit(url).hostname or "").lower()
    except ValueError:
        return ""


def are_same_url(url1: str, url2: str) -> bool:
    return normalize(url1) == normalize(url2)


def is_likely_non_content(url: str, rules: UrlRules = DEFAULT_RULES) -> bool:
    """True for auth, cart, account, admin, API and search pages, and for asset files."""
    try:
        path = urlsplit(url).path.lower()
    except ValueError:
        return False

    segments = [s for s in path.split("/") if s]
    if not segments:
        return False

    first = segments[0]
    if first in rules.non_content_prefixes or first.startswith("__"):
        return True
    if any(segment in rules.non_content_segments for segment in segments):
        return True

    _, ext = posixpath.splitext(segments[-1])
    return ext in rules.non_content_extensions


def _to_base36(value: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""
    value = abs(value)
    out = []
    while value:
        value, rem = divmod(value, 36)
        out.append(digits[rem])
    return sign + "".join(reversed(out))


def get_fingerprint(url: str) -> str:
    """Cheap 32-bit string hash of the normalized URL.

    Only a hint for fast pre-checks; collisions are possible.
    """
    h = 0
    for ch in normalize(url):
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return _to_base36(h)


def is_shortener(url: str, rules: UrlRules = DEFAULT_RULES) -> bool:
    """True if the URL points at a known link shortener or redirect endpoint."""
    domain = get_domain(url)
    if domain.startswith("www."):
        domain = domain[4:]
    if domain in rules.shortener_domains:
        return True
    lower = url.lower()
    return any(marker in lower for marker in REDIRECT_MARKERS)


def looks_like_redirect(url: str, rules: UrlRules = DEFAULT_RULES) -> bool:
    """Shortener, redirect endpoint, or simply too short to be an article URL."""
    return len(url) < SHORT_URL_MAX_LENGTH or is_shortener(url, rules)
