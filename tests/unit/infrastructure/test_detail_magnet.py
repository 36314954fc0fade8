"""Tests for DetailMagnetResolver (detail-page magnet lookup with retry)."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx

from freely_search.infrastructure.plugins.detail_magnet import DetailMagnetResolver

_MAGNET = "magnet:?xt=urn:btih:c12fe1c06bba254a9dc9f519b335aa7c1367a88a"
_DETAIL_URL = "https://idx.test/torrent/42/abbey-road"

_DETAIL_HTML = f"""\
<html><body>
  <a class="btn" href="/download/42.torrent">Torrent</a>
  <a class="btn btn-danger" href="{_MAGNET}">Magnet</a>
</body></html>
"""

_SLEEP = "freely_search.infrastructure.plugins.detail_magnet.asyncio.sleep"


def _resp(status: int, text: str = "", **headers: str) -> httpx.Response:
    return httpx.Response(
        status,
        text=text,
        headers=[(k.replace("_", "-"), v) for k, v in headers.items()],
    )


def _headers_of(call) -> dict[str, str]:  # noqa: ANN001
    return call.kwargs["headers"]


class TestResolve:
    async def test_string_selector_returns_href(self, fetch_mock: MagicMock) -> None:
        fetch_mock.fetch.return_value = _resp(200, _DETAIL_HTML)
        resolver = DetailMagnetResolver(fetch_mock)

        magnet = await resolver.resolve(_DETAIL_URL, 'a[href^="magnet:"]')

        assert magnet == _MAGNET

    async def test_browser_headers_and_referer(self, fetch_mock: MagicMock) -> None:
        fetch_mock.fetch.return_value = _resp(200, _DETAIL_HTML)
        resolver = DetailMagnetResolver(fetch_mock)

        await resolver.resolve(_DETAIL_URL, 'a[href^="magnet:"]')

        headers = _headers_of(fetch_mock.fetch.call_args)
        assert headers["Referer"] == "https://idx.test/"
        assert "text/html" in headers["Accept"]
        assert "User-Agent" in headers

    async def test_plugin_headers_merged(self, fetch_mock: MagicMock) -> None:
        fetch_mock.fetch.return_value = _resp(200, _DETAIL_HTML)
        resolver = DetailMagnetResolver(fetch_mock)

        await resolver.resolve(
            _DETAIL_URL, 'a[href^="magnet:"]', {"Cookie": "bb_session=1"}
        )

        assert _headers_of(fetch_mock.fetch.call_args)["Cookie"] == "bb_session=1"

    async def test_callable_selector_gets_document(self, fetch_mock: MagicMock) -> None:
        fetch_mock.fetch.return_value = _resp(200, _DETAIL_HTML)
        resolver = DetailMagnetResolver(fetch_mock)

        def _pick(document):  # noqa: ANN001, ANN202
            return document.select_one("a.btn-danger")["href"]

        assert await resolver.resolve(_DETAIL_URL, _pick) == _MAGNET

    async def test_no_match_returns_none(self, fetch_mock: MagicMock) -> None:
        fetch_mock.fetch.return_value = _resp(200, "<html><body></body></html>")
        resolver = DetailMagnetResolver(fetch_mock)
        assert await resolver.resolve(_DETAIL_URL, "a.magnet-link") is None

    async def test_empty_url(self, fetch_mock: MagicMock) -> None:
        resolver = DetailMagnetResolver(fetch_mock)
        assert await resolver.resolve("", "a") is None
        fetch_mock.fetch.assert_not_called()

    async def test_selector_error_returns_none(self, fetch_mock: MagicMock) -> None:
        fetch_mock.fetch.return_value = _resp(200, _DETAIL_HTML)
        resolver = DetailMagnetResolver(fetch_mock)

        def _boom(document):  # noqa: ANN001, ANN202
            raise ValueError("layout changed")

        assert await resolver.resolve(_DETAIL_URL, _boom) is None

    async def test_transport_error_returns_none(self, fetch_mock: MagicMock) -> None:
        fetch_mock.fetch.side_effect = httpx.ConnectError("refused")
        resolver = DetailMagnetResolver(fetch_mock)
        assert await resolver.resolve(_DETAIL_URL, "a") is None


class TestRetry:
    async def test_403_retries_after_cookie_preflight(
        self, fetch_mock: MagicMock
    ) -> None:
        fetch_mock.fetch.side_effect = [
            _resp(403),
            _resp(200, "<html></html>", set_cookie="cf_clearance=abc; Path=/"),
            _resp(200, _DETAIL_HTML),
        ]
        resolver = DetailMagnetResolver(fetch_mock)

        with patch(_SLEEP, new_callable=AsyncMock) as sleep:
            magnet = await resolver.resolve(_DETAIL_URL, 'a[href^="magnet:"]')

        assert magnet == _MAGNET
        sleep.assert_awaited_once_with(0.35)

        calls = fetch_mock.fetch.call_args_list
        assert len(calls) == 3
        assert calls[1].args[0] == "https://idx.test/"
        retry_headers = _headers_of(calls[2])
        assert calls[2].args[0] == _DETAIL_URL
        assert retry_headers["Cookie"] == "cf_clearance=abc"
        assert retry_headers["Cache-Control"] == "no-cache"

    async def test_429_and_503_also_retry(self, fetch_mock: MagicMock) -> None:
        for status in (429, 503):
            fetch_mock.fetch.reset_mock()
            fetch_mock.fetch.side_effect = [
                _resp(status),
                _resp(200),
                _resp(200, _DETAIL_HTML),
            ]
            resolver = DetailMagnetResolver(fetch_mock, retry_delay=0)

            with patch(_SLEEP, new_callable=AsyncMock):
                assert await resolver.resolve(_DETAIL_URL, "a.btn-danger") == _MAGNET

    async def test_retry_without_cookie_when_preflight_sets_none(
        self, fetch_mock: MagicMock
    ) -> None:
        fetch_mock.fetch.side_effect = [_resp(503), _resp(200), _resp(200, _DETAIL_HTML)]
        resolver = DetailMagnetResolver(fetch_mock)

        with patch(_SLEEP, new_callable=AsyncMock):
            await resolver.resolve(_DETAIL_URL, "a.btn-danger")

        assert "Cookie" not in _headers_of(fetch_mock.fetch.call_args_list[2])

    async def test_preflight_failure_still_retries(self, fetch_mock: MagicMock) -> None:
        fetch_mock.fetch.side_effect = [
            _resp(403),
            httpx.ConnectError("root down"),
            _resp(200, _DETAIL_HTML),
        ]
        resolver = DetailMagnetResolver(fetch_mock)

        with patch(_SLEEP, new_callable=AsyncMock):
            magnet = await resolver.resolve(_DETAIL_URL, "a.btn-danger")

        assert magnet == _MAGNET

    async def test_single_retry_only(self, fetch_mock: MagicMock) -> None:
        fetch_mock.fetch.side_effect = [_resp(403), _resp(200), _resp(403)]
        resolver = DetailMagnetResolver(fetch_mock)

        with patch(_SLEEP, new_callable=AsyncMock):
            assert await resolver.resolve(_DETAIL_URL, "a") is None

        assert fetch_mock.fetch.await_count == 3

    async def test_other_errors_not_retried(self, fetch_mock: MagicMock) -> None:
        fetch_mock.fetch.return_value = _resp(404)
        resolver = DetailMagnetResolver(fetch_mock)

        with patch(_SLEEP, new_callable=AsyncMock) as sleep:
            assert await resolver.resolve(_DETAIL_URL, "a") is None

        sleep.assert_not_awaited()
        assert fetch_mock.fetch.await_count == 1
