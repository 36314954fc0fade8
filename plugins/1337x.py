"""1337x plugin for freely-search.

Search pages only link to per-torrent detail pages; the magnet is read
from the detail page by the orchestrator via ``magnet_selector``.
Disabled by default (aggressive bot protection on most mirrors).
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx
from bs4 import BeautifulSoup, Tag

from freely_search.domain.entities import Candidate
from freely_search.infrastructure.common.converters import to_count
from freely_search.infrastructure.common.html_selectors import (
    absolute_url,
    extract_text,
    select_items,
)
from freely_search.infrastructure.plugins.templated import TemplatedScraper

_MIRRORS = [
    "https://www.1337x.to",
    "https://1337x.st",
]


class LeetxPlugin(TemplatedScraper):
    id = "1337x"
    name = "1337x"
    enabled = False
    row_selector = "table.table-list tbody tr"
    magnet_selector = 'a[href^="magnet:"]'

    def search_urls(
        self, query: str, page: int, data: Mapping[str, Any]
    ) -> list[str]:
        slug = "+".join(query.split())
        return [f"{mirror}/search/{slug}/{page}/" for mirror in _MIRRORS]

    def extract_row(
        self,
        document: BeautifulSoup,
        row: Tag,
        response: httpx.Response,
    ) -> Candidate | None:
        # First anchor is the category icon, last one the torrent name.
        links = select_items(row, "td.coll-1 a")
        if not links:
            return None
        link = links[-1]

        return Candidate(
            title=link.get_text(strip=True),
            url=absolute_url(str(response.url), link.get("href")),
            size=extract_text(row, "td.coll-4"),
            seeders=to_count(extract_text(row, "td.coll-2")),
            leechers=to_count(extract_text(row, "td.coll-3")),
        )


plugin = LeetxPlugin()
