"""KickassTorrents plugin for freely-search."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import quote

import httpx
from bs4 import BeautifulSoup, Tag

from freely_search.domain.entities import Candidate
from freely_search.infrastructure.common.converters import to_count
from freely_search.infrastructure.common.html_selectors import (
    absolute_url,
    cell_text,
    extract_attr,
    extract_text,
)
from freely_search.infrastructure.plugins.templated import TemplatedScraper


class KickassPlugin(TemplatedScraper):
    id = "kickass"
    name = "KickassTorrents"
    row_selector = "table.data tr.odd, table.data tr.even"

    def search_urls(
        self, query: str, page: int, data: Mapping[str, Any]
    ) -> list[str]:
        q = quote(query, safe="")
        return [
            f"https://kickasst.net/usearch/{q}%20category:music/",
            f"https://kickasstorrents.cc/search?query={q}",
        ]

    def extract_row(
        self,
        document: BeautifulSoup,
        row: Tag,
        response: httpx.Response,
    ) -> Candidate | None:
        href = extract_attr(row, "a.cellMainLink", "href")
        return Candidate(
            title=extract_text(row, "a.cellMainLink"),
            url=absolute_url(str(response.url), href),
            magnet_uri=extract_attr(row, "a.imagnet", "href") or None,
            size=cell_text(row, 1),
            seeders=to_count(extract_text(row, "td.green")),
            leechers=to_count(extract_text(row, "td.red")),
        )


plugin = KickassPlugin()
