"""CSS-selector-based HTML extraction for result tables.

Composable helpers used by row extractors.  Extraction functions
accept a primary selector and optional *fallback_selectors*; the first
selector that yields a non-empty value wins, which keeps plugins alive
across minor layout changes on the indexing sites.
"""

from __future__ import annotations

from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag


def parse_html(html: str) -> BeautifulSoup:
    """Parse an HTML document into a BeautifulSoup tree (lxml parser)."""
    return BeautifulSoup(html, "lxml")


def parse_row_fragment(html: str) -> BeautifulSoup:
    """Parse bare ``<tr>`` fragments by wrapping them in a synthetic table.

    Some endpoints return only table rows; without an enclosing table
    the parser drops the ``<tr>``/``<td>`` structure.
    """
    return parse_html(f"<table><tbody>{html}</tbody></table>")


def select_items(
    root: BeautifulSoup | Tag,
    selector: str,
    *fallback_selectors: str,
) -> list[Tag]:
    """Select elements via CSS with a fallback chain.

    Returns results from the **first** selector that matches at least
    one element.
    """
    for sel in (selector, *fallback_selectors):
        items = root.select(sel)
        if items:
            return items
    return []


def extract_text(
    element: Tag,
    selector: str,
    *fallback_selectors: str,
    default: str = "",
    strip: bool = True,
) -> str:
    """Extract text from the first matching child element.

    With ``selector=""`` the element's own text is returned.
    """
    if selector == "":
        text = element.get_text(strip=strip)
        return text if text else default

    for sel in (selector, *fallback_selectors):
        match = element.select_one(sel)
        if match:
            text = match.get_text(strip=strip)
            if text:
                return text
    return default


def extract_attr(
    element: Tag,
    selector: str,
    attr: str,
    *fallback_selectors: str,
    default: str = "",
) -> str:
    """Extract an HTML attribute from the first matching child element.

    With ``selector=""`` the attribute is read from *element* itself.
    """
    if selector == "":
        val = element.get(attr)
        return str(val) if val else default

    for sel in (selector, *fallback_selectors):
        match = element.select_one(sel)
        if match:
            val = match.get(attr)
            if val:
                return str(val)
    return default


def nth_match(element: Tag, selector: str, index: int) -> Tag | None:
    """Return the *index*-th element matching *selector* (negative counts from the end)."""
    matches = element.select(selector)
    try:
        return matches[index]
    except IndexError:
        return None


def cell_text(row: Tag, index: int, default: str = "") -> str:
    """Text of the *index*-th ``<td>`` in *row* (0-based)."""
    cell = nth_match(row, "td", index)
    if cell is None:
        return default
    return cell.get_text(strip=True) or default


def absolute_url(base_url: str, href: str | None) -> str | None:
    """Resolve *href* against *base_url*; ``None`` for empty links."""
    if not href:
        return None
    return urljoin(base_url, href)
