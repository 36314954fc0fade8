"""TorrentGalaxy plugin for freely-search."""

from __future__ import annotations

import httpx
from bs4 import BeautifulSoup, Tag

from freely_search.domain.entities import Candidate
from freely_search.infrastructure.common.converters import to_count
from freely_search.infrastructure.common.html_selectors import (
    absolute_url,
    extract_attr,
    extract_text,
)
from freely_search.infrastructure.plugins.templated import TemplatedScraper


class TorrentGalaxyPlugin(TemplatedScraper):
    id = "torrentgalaxy"
    name = "TorrentGalaxy"
    search_url = "https://torrentgalaxy.hair/fullsearch?q={query}"
    row_selector = "#torrents tr:not(.list-header)"
    magnet_selector = 'a[href^="magnet:"]'

    def extract_row(
        self,
        document: BeautifulSoup,
        row: Tag,
        response: httpx.Response,
    ) -> Candidate | None:
        href = extract_attr(row, ".item-title a", "href")
        return Candidate(
            title=extract_text(row, ".item-title a"),
            url=absolute_url(str(response.url), href),
            magnet_uri=extract_attr(row, 'a[href^="magnet:"]', "href") or None,
            size=extract_text(row, ".item-size"),
            seeders=to_count(extract_text(row, ".item-seed")),
            leechers=to_count(extract_text(row, ".item-leech")),
        )


plugin = TorrentGalaxyPlugin()
