"""Shared HTTP constants for the fetch layer and scraper plugins."""

from __future__ import annotations

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/125.0 Safari/537.36"
)

DEFAULT_ACCEPT_LANGUAGE = "en-US,en;q=0.9"

# Headers a desktop browser sends for a top-level navigation.
BROWSER_HEADERS: dict[str, str] = {
    "User-Agent": DEFAULT_USER_AGENT,
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "image/webp,image/apng,*/*;q=0.8"
    ),
    "Accept-Language": DEFAULT_ACCEPT_LANGUAGE,
    "Accept-Encoding": "gzip, deflate",
}

DEFAULT_CLIENT_TIMEOUT = 10.0
DEFAULT_MIRROR_TIMEOUT = 3.0
DEFAULT_MAX_REDIRECTS = 5
DEFAULT_DETAIL_RETRY_DELAY = 0.35

# Transient statuses that earn a detail page one retry after a cookie preflight.
DETAIL_RETRY_STATUSES = frozenset({403, 429, 503})
