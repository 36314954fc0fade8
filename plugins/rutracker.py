"""Rutracker plugin for freely-search.

Forum tracker that only serves search results to logged-in users:
- Form login (GET login page for the session cookie, then POST credentials)
- Session cookies kept in SessionState and sent with every request
- Detail pages carry the magnet in ``a.magnet-link``

Credentials via env vars: FREELY_RUTRACKER_USERNAME / FREELY_RUTRACKER_PASSWORD
Disabled by default; enable it with a plugin toggle once credentials are set.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any
from urllib.parse import quote, urlencode

import httpx
from bs4 import BeautifulSoup, Tag

from freely_search.domain.entities import Candidate
from freely_search.domain.plugins.exceptions import PluginLoginError
from freely_search.infrastructure.common.converters import format_size, to_count, to_int
from freely_search.infrastructure.common.html_selectors import (
    extract_attr,
    extract_text,
)
from freely_search.infrastructure.http.constants import BROWSER_HEADERS
from freely_search.infrastructure.http.fetch_client import cookie_pairs
from freely_search.infrastructure.plugins.templated import TemplatedScraper

_BASE_URL = "https://rutracker.org"
_FORUM_URL = f"{_BASE_URL}/forum"
_LOGIN_URL = f"{_FORUM_URL}/login.php"
_PER_PAGE = 50

# Value of the login form's submit button ("Вход"), sent in the site's charset.
_SUBMIT_VALUE = "Вход"
_FORM_ENCODING = "cp1251"


class RutrackerPlugin(TemplatedScraper):
    id = "rutracker"
    name = "Rutracker"
    enabled = False
    row_selector = "tr.hl-tr"
    magnet_selector = "a.magnet-link"
    default_data = {"cookies": None, "attempts": 0, "max_attempts": 3}

    def search_urls(
        self, query: str, page: int, data: Mapping[str, Any]
    ) -> list[str]:
        start = (max(page, 1) - 1) * _PER_PAGE
        return [f"{_FORUM_URL}/tracker.php?nm={quote(query, safe='')}&start={start}"]

    def request_options(self, data: Mapping[str, Any]) -> dict[str, str]:
        cookies = data.get("cookies")
        return {"Cookie": cookies} if cookies else {}

    def extract_row(
        self,
        document: BeautifulSoup,
        row: Tag,
        response: httpx.Response,
    ) -> Candidate | None:
        href = extract_attr(row, "a.torTopic", "href")
        raw_size = extract_attr(row, "td.tor-size", "data-ts_text")
        size_bytes = to_int(raw_size)
        return Candidate(
            title=extract_text(row, "a.torTopic"),
            url=f"{_FORUM_URL}/{href}" if href else None,
            size=format_size(size_bytes) if size_bytes is not None else raw_size,
            seeders=to_count(extract_text(row, "td.tor-seed b")),
            leechers=to_count(extract_text(row, "td.tor-leech")),
        )

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    async def login(self) -> bool:
        """Obtain session cookies; False when login is impossible or fails."""
        if self.data.get("cookies"):
            return True

        username = os.environ.get("FREELY_RUTRACKER_USERNAME", "")
        password = os.environ.get("FREELY_RUTRACKER_PASSWORD", "")
        if not username or not password:
            self._log.warning(
                "rutracker_missing_credentials",
                hint="set FREELY_RUTRACKER_USERNAME and FREELY_RUTRACKER_PASSWORD",
            )
            return False

        attempts = int(self.data.get("attempts") or 0)
        max_attempts = int(self.data.get("max_attempts") or 3)
        if attempts >= max_attempts:
            self._log.error("rutracker_login_attempts_exhausted", attempts=attempts)
            return False

        self._update_data({"attempts": attempts + 1})
        self._log.info(
            "rutracker_login_attempt",
            attempt=attempts + 1,
            max_attempts=max_attempts,
        )

        try:
            cookies = await self._perform_login(username, password)
        except Exception as exc:  # noqa: BLE001
            self._log.warning("rutracker_login_error", error=str(exc))
            self._update_data({"cookies": None})
            return False

        self._update_data({"cookies": cookies})
        self._log.info("rutracker_login_success")
        return True

    async def _perform_login(self, username: str, password: str) -> str:
        fetch = self._ensure_fetch()
        headers = {**BROWSER_HEADERS, "Cache-Control": "no-store"}

        pre = await fetch.fetch(_LOGIN_URL, headers=headers)
        if not pre.is_success:
            raise PluginLoginError(
                f"Failed to GET login page, status={pre.status_code}"
            )
        initial_cookies = cookie_pairs(pre)
        if not initial_cookies:
            raise PluginLoginError(
                "Did not receive initial session cookie. Anti-bot may be active."
            )

        body = urlencode(
            {
                "login_username": username,
                "login_password": password,
                "login": _SUBMIT_VALUE,
            },
            encoding=_FORM_ENCODING,
        )
        resp = await fetch.fetch(
            _LOGIN_URL,
            method="POST",
            headers={
                **headers,
                "Content-Type": "application/x-www-form-urlencoded",
                "Cookie": initial_cookies,
                "Referer": _LOGIN_URL,
                "Origin": _BASE_URL,
            },
            content=body,
            follow_redirects=False,
        )
        if not (resp.is_success or resp.is_redirect):
            raise PluginLoginError(f"Login POST failed, status={resp.status_code}")

        final_cookies = cookie_pairs(resp)
        if len([c for c in final_cookies.split("; ") if c]) < 2:
            raise PluginLoginError(
                "Login failed. Invalid credentials or anti-bot. "
                f"Response preview: {resp.text[:500]}"
            )
        return final_cookies


plugin = RutrackerPlugin()
