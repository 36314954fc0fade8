"""Magnet lookup on per-result detail pages.

Some indexers only list a detail link per row; the magnet sits on the
detail page.  Those pages sit behind the strictest bot checks, so the
request mimics a browser navigation and gets one retry after a cookie
preflight on the site root.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping

import httpx
import structlog

from freely_search.domain.plugins.base import MagnetSelector
from freely_search.infrastructure.common.html_selectors import extract_attr, parse_html
from freely_search.infrastructure.http.constants import (
    BROWSER_HEADERS,
    DEFAULT_DETAIL_RETRY_DELAY,
    DETAIL_RETRY_STATUSES,
)
from freely_search.infrastructure.http.fetch_client import (
    FetchClient,
    cookie_pairs,
    origin_of,
)

log = structlog.get_logger(__name__)


class DetailMagnetResolver:
    """Fetches a detail page and evaluates a plugin's magnet selector on it."""

    def __init__(
        self,
        fetch: FetchClient,
        *,
        retry_delay: float = DEFAULT_DETAIL_RETRY_DELAY,
    ) -> None:
        self._fetch = fetch
        self._retry_delay = retry_delay

    async def _cookie_preflight(self, origin: str) -> str:
        """Visit the site root and return any session cookies it sets."""
        try:
            resp = await self._fetch.fetch(f"{origin}/", headers=BROWSER_HEADERS)
        except Exception as exc:  # noqa: BLE001
            log.debug("detail_magnet_preflight_failed", origin=origin, error=str(exc))
            return ""
        return cookie_pairs(resp)

    async def _fetch_page(
        self, detail_url: str, headers: dict[str, str]
    ) -> httpx.Response:
        resp = await self._fetch.fetch(detail_url, headers=headers)
        if resp.is_success or resp.status_code not in DETAIL_RETRY_STATUSES:
            return resp

        log.debug(
            "detail_magnet_retry",
            url=detail_url,
            status=resp.status_code,
            delay=self._retry_delay,
        )
        await asyncio.sleep(self._retry_delay)

        retry_headers = {**headers, "Cache-Control": "no-cache"}
        origin = origin_of(detail_url)
        if origin:
            cookies = await self._cookie_preflight(origin)
            if cookies:
                retry_headers["Cookie"] = cookies
        return await self._fetch.fetch(detail_url, headers=retry_headers)

    async def resolve(
        self,
        detail_url: str,
        selector: MagnetSelector,
        headers: Mapping[str, str] | None = None,
    ) -> str | None:
        """Return the magnet found on *detail_url*, or None.

        A string *selector* yields the ``href`` of its first match; a
        callable receives the parsed page and returns whatever it finds.
        """
        if not detail_url:
            return None

        merged = {**BROWSER_HEADERS, **(headers or {})}
        origin = origin_of(detail_url)
        if origin and not any(k.lower() == "referer" for k in merged):
            merged["Referer"] = f"{origin}/"

        try:
            resp = await self._fetch_page(detail_url, merged)
            if not resp.is_success:
                log.warning(
                    "detail_magnet_http_error",
                    url=detail_url,
                    status=resp.status_code,
                )
                return None

            document = parse_html(resp.text)
            if callable(selector):
                magnet = selector(document)
            else:
                magnet = extract_attr(document, selector, "href") or None
        except Exception as exc:  # noqa: BLE001
            log.warning("detail_magnet_failed", url=detail_url, error=str(exc))
            return None

        return magnet or None
