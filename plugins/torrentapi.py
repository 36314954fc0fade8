"""torrentapi plugin for freely-search.

Token-gated JSON API aggregator (``pubapi_v2.php``):
- ``get_token`` hands out a short-lived token bound to an ``app_id``
- Searches pass the token; error codes 2/4 mean it is invalid or expired
- Error code 20 means "no results" and is not a failure

App id via env var: FREELY_TORRENTAPI_APP_ID
Disabled by default.
"""

from __future__ import annotations

import os
import time
from typing import Any
from urllib.parse import urlencode

from freely_search.domain.entities import Candidate
from freely_search.infrastructure.common.converters import format_size, to_count, to_int
from freely_search.infrastructure.plugins.scraper_base import CustomScraper

_API_URL = "https://torrentapi.org/pubapi_v2.php"
_DEFAULT_APP_ID = "freely_search"
_CATEGORIES = "23;25"  # Music/MP3, Music/FLAC
_LIMIT = 100

# Tokens expire after 15 minutes; renew a little earlier.
_TOKEN_TTL_SECONDS = 14 * 60

_INVALID_TOKEN_CODES = {2, 4}
_NO_RESULTS_CODE = 20


def _app_id() -> str:
    return os.environ.get("FREELY_TORRENTAPI_APP_ID") or _DEFAULT_APP_ID


class TorrentApiPlugin(CustomScraper):
    id = "torrentapi"
    name = "TorrentAPI"
    enabled = False
    default_data = {"token": None, "token_acquired_at": 0.0}

    # ------------------------------------------------------------------
    # Token handling
    # ------------------------------------------------------------------

    def _token_is_fresh(self) -> bool:
        token = self.data.get("token")
        acquired = float(self.data.get("token_acquired_at") or 0.0)
        return bool(token) and time.monotonic() - acquired < _TOKEN_TTL_SECONDS

    def _reset_token(self) -> None:
        self._update_data({"token": None, "token_acquired_at": 0.0})

    async def _ensure_token(self) -> str | None:
        if self._token_is_fresh():
            return self.data["token"]

        url = f"{_API_URL}?{urlencode({'get_token': 'get_token', 'app_id': _app_id()})}"
        resp = await self._safe_fetch(url, context="token")
        if resp is None:
            return None
        payload = self._safe_parse_json(resp, context="token")
        token = payload.get("token") if isinstance(payload, dict) else None
        if not token:
            self._log.warning("torrentapi_token_missing")
            return None

        self._update_data({"token": token, "token_acquired_at": time.monotonic()})
        self._log.debug("torrentapi_token_acquired")
        return token

    async def login(self) -> bool:
        return await self._ensure_token() is not None

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def _query(self, query: str, token: str) -> dict[str, Any] | None:
        params = {
            "mode": "search",
            "search_string": query,
            "category": _CATEGORIES,
            "format": "json_extended",
            "limit": _LIMIT,
            "token": token,
            "app_id": _app_id(),
        }
        resp = await self._safe_fetch(f"{_API_URL}?{urlencode(params)}", context="search")
        if resp is None:
            return None
        payload = self._safe_parse_json(resp, context="search")
        return payload if isinstance(payload, dict) else None

    async def search(self, query: str, page: int = 1) -> list[Candidate]:
        # The API has no paging; everything comes back on the first page.
        if page > 1:
            return []

        payload: dict[str, Any] | None = None
        for _ in range(2):
            token = await self._ensure_token()
            if token is None:
                return []
            payload = await self._query(query, token)
            if payload is None:
                return []
            if to_int(payload.get("error_code")) in _INVALID_TOKEN_CODES:
                self._log.info(
                    "torrentapi_token_rejected", error_code=payload.get("error_code")
                )
                self._reset_token()
                payload = None
                continue
            break

        if payload is None:
            return []

        error_code = to_int(payload.get("error_code"))
        if error_code == _NO_RESULTS_CODE:
            return []
        if error_code is not None:
            self._log.warning(
                "torrentapi_error",
                error_code=error_code,
                error=payload.get("error", ""),
            )
            return []

        return [
            candidate
            for item in payload.get("torrent_results") or []
            if (candidate := self._to_candidate(item)) is not None
        ]

    def _to_candidate(self, item: Any) -> Candidate | None:
        if not isinstance(item, dict) or not item.get("title"):
            return None
        size = to_int(item.get("size"))
        return Candidate(
            title=str(item["title"]),
            url=item.get("info_page") or None,
            magnet_uri=item.get("download") or None,
            size=format_size(size) if size is not None else "",
            seeders=to_count(item.get("seeders")),
            leechers=to_count(item.get("leechers")),
            source=self.name,
            plugin_id=self.id,
        )


plugin = TorrentApiPlugin()
