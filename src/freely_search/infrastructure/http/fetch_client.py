"""Redirect- and cookie-aware HTTP fetching on top of httpx.

httpx follows redirects on its own, but it neither accumulates session
cookies from intermediate hops into an explicit ``Cookie`` header nor
lets callers set a per-call hop cap.  Sites behind anti-bot layers
commonly set their session cookie on a 302 and expect it on the very
next request, so redirects are walked manually here.

Only the explicit running cookie string is ever sent. The owned client
uses a jar that refuses every cookie, and jar-supplied headers from an
injected client are dropped.

Redirect method rules:
- 303 always becomes GET without a body.
- 301/302 become GET (dropping body and content headers) unless the
  original method already was GET/HEAD.
- 307/308 keep method and body unchanged.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping
from http.cookiejar import CookieJar, DefaultCookiePolicy
from typing import Any
from urllib.parse import urlsplit

import httpx
import structlog

from .constants import (
    DEFAULT_ACCEPT_LANGUAGE,
    DEFAULT_CLIENT_TIMEOUT,
    DEFAULT_MAX_REDIRECTS,
    DEFAULT_MIRROR_TIMEOUT,
    DEFAULT_USER_AGENT,
)

log = structlog.get_logger(__name__)

_CONTENT_HEADERS = ("content-type", "content-length")


class TooManyRedirectsError(Exception):
    """Raised when a request exceeds its redirect hop cap."""

    def __init__(self, url: str, max_redirects: int) -> None:
        super().__init__(f"Too many redirects (>{max_redirects}) for {url}")
        self.url = url
        self.max_redirects = max_redirects


def origin_of(url: str | httpx.URL) -> str | None:
    """Return ``scheme://host[:port]`` of *url*, or None if it has no host."""
    parts = urlsplit(str(url))
    if not parts.scheme or not parts.netloc:
        return None
    return f"{parts.scheme}://{parts.netloc}"


def cookie_pairs(response: httpx.Response) -> str:
    """Join the ``name=value`` part of every Set-Cookie header on *response*."""
    pairs = [
        raw.split(";", 1)[0].strip()
        for raw in response.headers.get_list("set-cookie")
    ]
    return "; ".join(p for p in pairs if p)


def _is_redirect(response: httpx.Response) -> bool:
    return 300 <= response.status_code < 400 and "location" in response.headers


def _refusing_jar() -> CookieJar:
    """Cookie jar that never stores anything; sessions travel in headers."""
    return CookieJar(policy=DefaultCookiePolicy(allowed_domains=[]))


class FetchClient:
    """Issues one logical request, following redirects by hand.

    The underlying ``httpx.AsyncClient`` is created lazily unless one is
    injected (tests pass a client bound to a mock transport).
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = DEFAULT_CLIENT_TIMEOUT,
        max_redirects: int = DEFAULT_MAX_REDIRECTS,
        mirror_timeout: float = DEFAULT_MIRROR_TIMEOUT,
    ) -> None:
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout
        self.user_agent = user_agent
        self.max_redirects = max_redirects
        self.mirror_timeout = mirror_timeout

    # ------------------------------------------------------------------
    # Client lifecycle
    # ------------------------------------------------------------------

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Create httpx client if not already running."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=False,
                cookies=_refusing_jar(),
            )
        return self._client

    async def aclose(self) -> None:
        """Close the httpx client if this instance created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def _default_headers(self) -> dict[str, str]:
        return {
            "User-Agent": self.user_agent,
            "Accept-Language": DEFAULT_ACCEPT_LANGUAGE,
        }

    async def fetch(
        self,
        url: str,
        *,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        content: str | bytes | None = None,
        data: Mapping[str, Any] | None = None,
        max_redirects: int | None = None,
        follow_redirects: bool = True,
    ) -> httpx.Response:
        """Perform one request and return the first non-redirect response.

        With ``follow_redirects=False`` the first response is returned even
        when it is a redirect (login flows read its Set-Cookie headers).
        Non-2xx responses are returned as-is; only transport errors and
        :class:`TooManyRedirectsError` propagate.
        """
        client = await self._ensure_client()
        hop_cap = self.max_redirects if max_redirects is None else max_redirects

        base_headers = httpx.Headers(self._default_headers())
        base_headers.update(headers or {})
        cookies = base_headers.get("cookie")

        current_url = url
        current_method = method.upper()
        body_content = content
        body_data = data
        last_origin: str | None = None
        redirects = 0

        while True:
            send_headers = base_headers.copy()
            if last_origin:
                send_headers["Referer"] = f"{last_origin}/"
            if cookies:
                send_headers["Cookie"] = cookies

            request = client.build_request(
                current_method,
                current_url,
                headers=send_headers,
                content=body_content,
                data=body_data,
            )
            if not cookies:
                # An injected client may carry its own jar.
                request.headers.pop("cookie", None)
            response = await client.send(request, follow_redirects=False)

            if not follow_redirects or not _is_redirect(response):
                return response

            new_cookies = cookie_pairs(response)
            if new_cookies:
                cookies = f"{cookies}; {new_cookies}" if cookies else new_cookies

            redirects += 1
            if redirects > hop_cap:
                log.warning(
                    "fetch_too_many_redirects",
                    url=url,
                    max_redirects=hop_cap,
                )
                raise TooManyRedirectsError(url, hop_cap)

            next_url = str(response.url.join(response.headers["location"]))
            last_origin = origin_of(response.url)
            status = response.status_code

            if status == 303 or (
                status in (301, 302) and current_method not in ("GET", "HEAD")
            ):
                current_method = "GET"
                body_content = None
                body_data = None
                for name in _CONTENT_HEADERS:
                    base_headers.pop(name, None)

            log.debug(
                "fetch_redirect",
                status=status,
                from_url=current_url,
                to_url=next_url,
                method=current_method,
            )
            current_url = next_url

    async def try_fetch_any(
        self,
        urls: str | Iterable[str],
        *,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response | None:
        """Try mirror URLs in order; return the first 2xx response.

        Each attempt gets its own timeout.  Exhausting every mirror is a
        normal outcome and yields ``None``.
        """
        attempt_timeout = self.mirror_timeout if timeout is None else timeout
        candidates = [urls] if isinstance(urls, str) else list(urls)

        for url in candidates:
            try:
                response = await asyncio.wait_for(
                    self.fetch(url, headers=headers),
                    timeout=attempt_timeout,
                )
            except asyncio.TimeoutError:
                log.debug("mirror_timeout", url=url, timeout=attempt_timeout)
                continue
            except Exception as exc:  # noqa: BLE001
                log.debug("mirror_fetch_failed", url=url, error=str(exc))
                continue

            if response.is_success:
                return response
            log.debug("mirror_http_error", url=url, status=response.status_code)

        return None
