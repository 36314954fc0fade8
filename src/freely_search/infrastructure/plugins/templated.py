"""Declarative HTML scraper: URL template + row selector + row extractor.

Most indexing sites render search results as an HTML table.  A plugin
for such a site only declares where to search and how to read one row;
fetching, mirror fallback, parsing and row isolation live here.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import quote

import httpx
from bs4 import BeautifulSoup, Tag

from freely_search.domain.entities import Candidate
from freely_search.domain.plugins.base import MagnetSelector
from freely_search.domain.plugins.exceptions import PluginFetchError
from freely_search.infrastructure.common.html_selectors import (
    parse_html,
    parse_row_fragment,
)
from freely_search.infrastructure.http.fetch_client import origin_of

from .scraper_base import ScraperBase


class TemplatedScraper(ScraperBase):
    """Base for table-based HTML scrapers.

    Subclasses **must** set:
    - ``row_selector``
    - either ``search_url`` (with ``{query}``/``{page}`` placeholders)
      or override ``search_urls()``

    Subclasses **must** override:
    - ``extract_row()``

    Subclasses **may** set/override:
    - ``magnet_selector`` (CSS selector or callable for detail pages)
    - ``html_fragment`` (endpoint returns bare ``<tr>`` rows)
    - ``request_options()`` (extra headers derived from SessionState)
    """

    search_url: str | None = None
    row_selector: str = ""
    magnet_selector: MagnetSelector | None = None
    html_fragment: bool = False

    # ------------------------------------------------------------------
    # Declarative hooks
    # ------------------------------------------------------------------

    def search_urls(
        self, query: str, page: int, data: Mapping[str, Any]
    ) -> list[str]:
        """Candidate URLs (mirrors, tried in order) for one search."""
        if not self.search_url:
            raise NotImplementedError(
                f"{type(self).__name__} needs search_url or search_urls()"
            )
        return [
            self.search_url.replace("{query}", quote(query, safe="")).replace(
                "{page}", str(page)
            )
        ]

    def request_options(self, data: Mapping[str, Any]) -> dict[str, str]:
        """Extra request headers (cookies, tokens) derived from SessionState."""
        return {}

    def extract_row(
        self,
        document: BeautifulSoup,
        row: Tag,
        response: httpx.Response,
    ) -> Candidate | None:
        """Read one result row; return None to skip it.

        Subclasses **must** override this method.
        """
        raise NotImplementedError(
            f"{type(self).__name__}.extract_row() not implemented"
        )

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _parse(self, body: str) -> BeautifulSoup:
        if self.html_fragment:
            return parse_row_fragment(body)
        return parse_html(body)

    async def search(self, query: str, page: int = 1) -> list[Candidate]:
        """Fetch the first working mirror and extract one candidate per row.

        Raises:
            PluginFetchError: every mirror failed or timed out.
        """
        data = dict(self.data)
        urls = self.search_urls(query, page, data)

        headers = dict(self.request_options(data))
        if urls:
            origin = origin_of(urls[0])
            if origin:
                headers["Referer"] = f"{origin}/"

        fetch = self._ensure_fetch()
        response = await fetch.try_fetch_any(urls, headers=headers)
        if response is None:
            first = urls[0] if urls else ""
            raise PluginFetchError(f"{self.name} ({first}) fetch failed: no response")

        document = self._parse(response.text)

        candidates: list[Candidate] = []
        skipped = 0
        for row in document.select(self.row_selector):
            try:
                candidate = self.extract_row(document, row, response)
            except Exception as exc:  # noqa: BLE001
                skipped += 1
                self._log.warning(
                    f"{self.id}_row_parse_error",
                    error=str(exc),
                )
                continue
            if candidate is None or not candidate.title:
                skipped += 1
                self._log.debug(
                    f"{self.id}_row_skipped",
                    reason="empty" if candidate is None else "no_title",
                )
                continue
            candidate.source = self.name
            candidate.plugin_id = self.id
            candidates.append(candidate)

        self._log.debug(
            f"{self.id}_search_parsed",
            query=query,
            page=page,
            url=str(response.url),
            results=len(candidates),
            skipped=skipped,
        )
        return candidates
