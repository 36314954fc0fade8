"""magnetDL plugin for freely-search.

The ``data.php`` endpoint answers with bare ``<tr>`` rows (no table
around them) and serves one results page per request.  One plugin
instance is registered per page so the pages are fetched in parallel.
"""

from __future__ import annotations

import httpx
from bs4 import BeautifulSoup, Tag

from freely_search.domain.entities import Candidate
from freely_search.infrastructure.common.converters import to_count
from freely_search.infrastructure.common.html_selectors import (
    cell_text,
    extract_attr,
    extract_text,
)
from freely_search.infrastructure.plugins.templated import TemplatedScraper

_PAGES = 4


class MagnetDLPlugin(TemplatedScraper):
    name = "magnetDL"
    row_selector = "tr"
    html_fragment = True
    magnet_selector = 'a[href^="magnet:"]'

    def __init__(self, page_index: int) -> None:
        self.id = f"magnetdl-{page_index + 1}"
        self.search_url = (
            f"https://magnetdl.app/data.php?page={page_index}&q={{query}}"
        )
        super().__init__()

    def extract_row(
        self,
        document: BeautifulSoup,
        row: Tag,
        response: httpx.Response,
    ) -> Candidate | None:
        magnet = extract_attr(row, 'a[href^="magnet:"]', "href") or None
        return Candidate(
            title=cell_text(row, 1),
            url=magnet,
            magnet_uri=magnet,
            size=cell_text(row, 4),
            seeders=to_count(extract_text(row, "td.s")),
            leechers=to_count(extract_text(row, "td.l")),
        )


plugins = [MagnetDLPlugin(page_index) for page_index in range(_PAGES)]
