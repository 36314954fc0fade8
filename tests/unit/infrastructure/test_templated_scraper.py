"""Tests for the TemplatedScraper and CustomScraper plugin bases."""

from __future__ import annotations

from collections.abc import Callable
from unittest.mock import MagicMock

import httpx
import pytest
from bs4 import BeautifulSoup, Tag

from freely_search.domain.entities import Candidate
from freely_search.domain.plugins import PluginFetchError, ScraperPlugin
from freely_search.infrastructure.common.html_selectors import (
    absolute_url,
    extract_attr,
    extract_text,
)
from freely_search.infrastructure.plugins.scraper_base import CustomScraper
from freely_search.infrastructure.plugins.templated import TemplatedScraper

_RESULTS_HTML = """\
<html><body><table>
  <tr class="r"><td><a class="t" href="/t/1">Abbey Road [FLAC]</a></td><td>9</td></tr>
  <tr class="r"><td><a class="t" href="/t/2"></a></td><td>3</td></tr>
  <tr class="r"><td><a class="t" href="/t/3">BROKEN</a></td><td>1</td></tr>
  <tr class="r"><td><a class="t" href="/t/4">Let It Be</a></td><td>2</td></tr>
</table></body></html>
"""


# ---------------------------------------------------------------------------
# Concrete test subclasses
# ---------------------------------------------------------------------------


class _SitePlugin(TemplatedScraper):
    id = "site"
    name = "Site"
    search_url = "https://site.test/search/{query}/{page}"
    row_selector = "tr.r"

    def extract_row(
        self, document: BeautifulSoup, row: Tag, response: httpx.Response
    ) -> Candidate | None:
        title = extract_text(row, "a.t")
        if title == "BROKEN":
            raise ValueError("unexpected row layout")
        return Candidate(
            title=title,
            url=absolute_url(str(response.url), extract_attr(row, "a.t", "href")),
            seeders=int(extract_text(row, "td:nth-of-type(2)") or 0),
        )


class _FragmentPlugin(_SitePlugin):
    id = "fragment"
    row_selector = "tr"
    html_fragment = True


class _CookiePlugin(_SitePlugin):
    id = "cookie"
    default_data = {"cookies": "sid=1"}

    def request_options(self, data):  # noqa: ANN001, ANN201
        return {"Cookie": data["cookies"]}


class _NoTemplatePlugin(TemplatedScraper):
    id = "none"
    name = "None"


class _ApiPlugin(CustomScraper):
    id = "api"
    name = "API"


def _bound(plugin: TemplatedScraper, fetch: MagicMock) -> TemplatedScraper:
    plugin.bind(fetch=fetch)
    return plugin


# ---------------------------------------------------------------------------
# TemplatedScraper
# ---------------------------------------------------------------------------


class TestSearchUrls:
    def test_template_substitution(self) -> None:
        urls = _SitePlugin().search_urls("abbey road/ost", 2, {})
        assert urls == ["https://site.test/search/abbey%20road%2Fost/2"]

    def test_missing_template(self) -> None:
        with pytest.raises(NotImplementedError):
            _NoTemplatePlugin().search_urls("x", 1, {})


class TestSearch:
    async def test_rows_extracted_and_tagged(
        self, fetch_mock: MagicMock, make_response: Callable[..., httpx.Response]
    ) -> None:
        fetch_mock.try_fetch_any.return_value = make_response(
            _RESULTS_HTML, url="https://mirror.test/search/abbey/1"
        )
        plugin = _bound(_SitePlugin(), fetch_mock)

        results = await plugin.search("abbey road")

        assert [c.title for c in results] == ["Abbey Road [FLAC]", "Let It Be"]
        assert results[0].url == "https://mirror.test/t/1"
        assert results[0].seeders == 9
        assert all(c.source == "Site" and c.plugin_id == "site" for c in results)

    async def test_dropped_rows_logged(
        self, fetch_mock: MagicMock, make_response: Callable[..., httpx.Response]
    ) -> None:
        fetch_mock.try_fetch_any.return_value = make_response(
            _RESULTS_HTML, url="https://mirror.test/search/abbey/1"
        )
        plugin = _bound(_SitePlugin(), fetch_mock)
        plugin._log = MagicMock()

        await plugin.search("abbey road")

        plugin._log.debug.assert_any_call("site_row_skipped", reason="no_title")
        plugin._log.warning.assert_any_call(
            "site_row_parse_error", error="unexpected row layout"
        )
        summary = plugin._log.debug.call_args_list[-1]
        assert summary.args == ("site_search_parsed",)
        assert summary.kwargs["skipped"] == 2

    async def test_referer_from_first_url(
        self, fetch_mock: MagicMock, make_response: Callable[..., httpx.Response]
    ) -> None:
        fetch_mock.try_fetch_any.return_value = make_response(_RESULTS_HTML)
        plugin = _bound(_SitePlugin(), fetch_mock)

        await plugin.search("abbey road", 3)

        urls = fetch_mock.try_fetch_any.call_args.args[0]
        headers = fetch_mock.try_fetch_any.call_args.kwargs["headers"]
        assert urls == ["https://site.test/search/abbey%20road/3"]
        assert headers["Referer"] == "https://site.test/"

    async def test_request_options_sent(
        self, fetch_mock: MagicMock, make_response: Callable[..., httpx.Response]
    ) -> None:
        fetch_mock.try_fetch_any.return_value = make_response(_RESULTS_HTML)
        plugin = _bound(_CookiePlugin(), fetch_mock)

        await plugin.search("x")

        headers = fetch_mock.try_fetch_any.call_args.kwargs["headers"]
        assert headers["Cookie"] == "sid=1"

    async def test_no_response_raises(self, fetch_mock: MagicMock) -> None:
        fetch_mock.try_fetch_any.return_value = None
        plugin = _bound(_SitePlugin(), fetch_mock)

        with pytest.raises(PluginFetchError):
            await plugin.search("abbey road")

    async def test_html_fragment(
        self, fetch_mock: MagicMock, make_response: Callable[..., httpx.Response]
    ) -> None:
        fragment = (
            '<tr class="r"><td><a class="t" href="/t/1">Abbey Road</a></td>'
            "<td>4</td></tr>"
        )
        fetch_mock.try_fetch_any.return_value = make_response(fragment)
        plugin = _bound(_FragmentPlugin(), fetch_mock)

        results = await plugin.search("abbey road")

        assert [c.title for c in results] == ["Abbey Road"]
        assert results[0].seeders == 4

    async def test_empty_page(
        self, fetch_mock: MagicMock, make_response: Callable[..., httpx.Response]
    ) -> None:
        fetch_mock.try_fetch_any.return_value = make_response("<html></html>")
        plugin = _bound(_SitePlugin(), fetch_mock)
        assert await plugin.search("nothing") == []


class TestScraperBase:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(_SitePlugin(), ScraperPlugin)
        assert isinstance(_ApiPlugin(), ScraperPlugin)

    def test_data_seeded_per_instance(self) -> None:
        a = _CookiePlugin()
        b = _CookiePlugin()
        a.data["cookies"] = "changed"
        assert b.data["cookies"] == "sid=1"

    def test_update_data_goes_through_session_update(self) -> None:
        plugin = _CookiePlugin()
        updates: list[dict] = []
        plugin.bind(session_update=updates.append)

        plugin._update_data({"cookies": "new"})

        assert updates == [{"cookies": "new"}]

    def test_update_data_unbound_merges_locally(self) -> None:
        plugin = _CookiePlugin()
        plugin._update_data({"token": "t"})
        assert plugin.data == {"cookies": "sid=1", "token": "t"}

    async def test_cleanup_keeps_bound_fetch(self, fetch_mock: MagicMock) -> None:
        plugin = _bound(_SitePlugin(), fetch_mock)
        await plugin.cleanup()
        fetch_mock.aclose.assert_not_awaited()

    async def test_cleanup_closes_private_fetch(self) -> None:
        plugin = _SitePlugin()
        fetch = plugin._ensure_fetch()
        http_client = await fetch._ensure_client()
        await plugin.cleanup()
        assert http_client.is_closed


# ---------------------------------------------------------------------------
# CustomScraper
# ---------------------------------------------------------------------------


class TestCustomScraper:
    async def test_search_must_be_overridden(self) -> None:
        with pytest.raises(NotImplementedError):
            await _ApiPlugin().search("x")

    async def test_safe_fetch_non_2xx_is_none(
        self, fetch_mock: MagicMock, make_response: Callable[..., httpx.Response]
    ) -> None:
        fetch_mock.fetch.return_value = make_response("", status_code=500)
        plugin = _ApiPlugin()
        plugin.bind(fetch=fetch_mock)
        assert await plugin._safe_fetch("https://api.test/") is None

    async def test_safe_fetch_timeout_is_none(self, fetch_mock: MagicMock) -> None:
        fetch_mock.fetch.side_effect = httpx.ReadTimeout("slow")
        plugin = _ApiPlugin()
        plugin.bind(fetch=fetch_mock)
        assert await plugin._safe_fetch("https://api.test/") is None

    async def test_safe_fetch_success(
        self, fetch_mock: MagicMock, make_response: Callable[..., httpx.Response]
    ) -> None:
        fetch_mock.fetch.return_value = make_response('{"ok": true}')
        plugin = _ApiPlugin()
        plugin.bind(fetch=fetch_mock)

        resp = await plugin._safe_fetch("https://api.test/", method="POST")

        assert resp is not None
        assert plugin._safe_parse_json(resp) == {"ok": True}
        assert fetch_mock.fetch.call_args.kwargs["method"] == "POST"

    def test_safe_parse_json_invalid(
        self, make_response: Callable[..., httpx.Response]
    ) -> None:
        assert _ApiPlugin()._safe_parse_json(make_response("<html>")) is None
