"""torrent9 plugin for freely-search.

Result rows link to detail pages; the magnet sits behind the red
download button there and is picked by a callback selector.
"""

from __future__ import annotations

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


def _download_button_magnet(document: BeautifulSoup) -> str | None:
    return (
        extract_attr(document, 'a.btn.btn-danger[href^="magnet:"]', "href") or None
    )


class Torrent9Plugin(TemplatedScraper):
    id = "torrent9"
    name = "torrent9"
    search_url = "https://www.torrent9.re/recherche/{query}"
    row_selector = "table tbody tr"
    magnet_selector = staticmethod(_download_button_magnet)

    def extract_row(
        self,
        document: BeautifulSoup,
        row: Tag,
        response: httpx.Response,
    ) -> Candidate | None:
        href = extract_attr(row, "td a", "href")
        return Candidate(
            title=extract_text(row, "td a"),
            url=absolute_url(str(response.url), href),
            size=cell_text(row, 1),
            seeders=to_count(cell_text(row, 2)),
            leechers=to_count(cell_text(row, 3)),
        )


plugin = Torrent9Plugin()
