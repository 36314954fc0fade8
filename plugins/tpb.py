"""The Pirate Bay plugin for freely-search.

Scrapes the tpb.party proxy search page (audio category, seeders desc).
Magnets are inline in every row, so no detail lookup is needed.
"""

from __future__ import annotations

import re

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

# "Uploaded 03-14 2019, Size 512.3 MiB, ULed by someone"
_SIZE_RE = re.compile(r"Size\s+([\d.]+.*?[KMGT]i?B)")


class PirateBayPlugin(TemplatedScraper):
    id = "tpb"
    name = "The Pirate Bay"
    search_url = "https://tpb.party/search/{query}/{page}/99/100"
    row_selector = "#searchResult tr:not(.header)"

    def extract_row(
        self,
        document: BeautifulSoup,
        row: Tag,
        response: httpx.Response,
    ) -> Candidate | None:
        title = extract_text(row, ".detName a")
        if not title:
            return None

        href = extract_attr(row, ".detName a", "href")
        size_match = _SIZE_RE.search(extract_text(row, "font.detDesc", ".detDesc"))
        return Candidate(
            title=title,
            url=absolute_url(str(response.url), href),
            magnet_uri=extract_attr(row, 'a[href^="magnet:"]', "href") or None,
            size=size_match.group(1) if size_match else "",
            seeders=to_count(cell_text(row, 2)),
            leechers=to_count(cell_text(row, 3)),
        )


plugin = PirateBayPlugin()
