"""Tier 1: SSRF-safe static HTML fetch."""

from __future__ import annotations

import ipaddress
import logging
import socket
from dataclasses import dataclass
from urllib.parse import urlparse

from history_alchemy.exceptions import WebFetchError

logger = logging.getLogger(__name__)

_ALLOWED_SCHEMES = {"http", "https"}

_BLOCKED_NETWORKS = [
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("169.254.0.0/16"),
    ipaddress.ip_network("0.0.0.0/8"),
    ipaddress.ip_network("::1/128"),
    ipaddress.ip_network("fc00::/7"),
    ipaddress.ip_network("fe80::/10"),
]

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)


def _validate_url(url: str) -> tuple[bool, str | None]:
    """Validate a URL for safety. Returns (is_safe, error_message)."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False, "Invalid URL format"

    if parsed.scheme not in _ALLOWED_SCHEMES:
        return False, f"Blocked URL scheme: {parsed.scheme}. Only http/https allowed."

    hostname = parsed.hostname
    if not hostname:
        return False, "URL has no hostname"

    if hostname in ("localhost", "0.0.0.0"):
        return False, "Blocked: localhost access not allowed"

    try:
        for addr_info in socket.getaddrinfo(hostname, None):
            ip = ipaddress.ip_address(addr_info[4][0])
            for network in _BLOCKED_NETWORKS:
                if ip in network:
                    return False, f"Blocked: URL resolves to private/internal IP ({ip})"
    except socket.gaierror:
        return False, f"Cannot resolve hostname: {hostname}"

    return True, None


@dataclass
class FetchedPage:
    html: str
    final_url: str
    status_code: int
    content_type: str


class WebFetcher:
    """Bounded-timeout HTTP GET that reports the post-redirect URL.

    Args:
        timeout: Total request timeout in seconds.
        max_response_bytes: Maximum response size in bytes (default 2MB).
        max_redirects: Maximum number of redirects to follow.
    """

    def __init__(
        self,
        timeout: float = 5.0,
        max_response_bytes: int = 2_097_152,
        max_redirects: int = 5,
    ):
        self.timeout = timeout
        self.max_response_bytes = max_response_bytes
        self.max_redirects = max_redirects

    async def fetch(self, url: str) -> FetchedPage:
        try:
            import httpx
        except ImportError:
            raise ImportError(
                "httpx is required for WebFetcher. "
                "Install with: pip install history-alchemy[web]"
            )

        is_safe, error = _validate_url(url)
        if not is_safe:
            raise WebFetchError(error)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=False) as client:
                current_url = url
                response = None
                for _ in range(self.max_redirects + 1):
                    response = await client.get(current_url, headers={"User-Agent": USER_AGENT})
                    if not (response.is_redirect and response.next_request):
                        break
                    redirect_url = str(response.next_request.url)
                    redir_safe, redir_err = _validate_url(redirect_url)
                    if not redir_safe:
                        raise WebFetchError(f"Redirect blocked: {redir_err}")
                    current_url = redirect_url
                else:
                    raise WebFetchError(f"Too many redirects (>{self.max_redirects})")

                if response is None:
                    raise WebFetchError("No response received")
                if len(response.content) > self.max_response_bytes:
                    raise WebFetchError(f"Response too large (>{self.max_response_bytes} bytes)")
                response.raise_for_status()

            content_type = response.headers.get("content-type", "")
            if content_type and "html" not in content_type and "xml" not in content_type:
                raise WebFetchError(f"Not an HTML document: {content_type}")

            return FetchedPage(
                html=response.text,
                final_url=str(response.url),
                status_code=response.status_code,
                content_type=content_type,
            )
        except WebFetchError:
            raise
        except Exception as e:
            raise WebFetchError(f"Fetch failed: {e}") from e
