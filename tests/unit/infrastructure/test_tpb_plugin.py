"""Tests for the Pirate Bay plugin (tpb.party search pages)."""

from __future__ import annotations

import importlib.util
from pathlib import Path
from types import ModuleType

import pytest

from freely_search.domain.plugins import PluginFetchError

_PLUGIN_PATH = Path(__file__).resolve().parents[3] / "plugins" / "tpb.py"


def _load_module() -> ModuleType:
    """Load tpb.py plugin via importlib."""
    spec = importlib.util.spec_from_file_location("tpb_plugin", str(_PLUGIN_PATH))
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


_mod = _load_module()
_PirateBayPlugin = _mod.PirateBayPlugin

_HASH = "c12fe1c06bba254a9dc9f519b335aa7c1367a88a"

_SEARCH_HTML = f"""\
<html><body>
<table id="searchResult">
  <thead id="tableHead">
    <tr class="header"><th>Type</th><th>Name</th><th>SE</th><th>LE</th></tr>
  </thead>
  <tr>
    <td class="vertTh"><a href="/browse/101">Music</a></td>
    <td>
      <div class="detName">
        <a href="/torrent/1234/Abbey_Road" class="detLink">The Beatles - Abbey Road [FLAC]</a>
      </div>
      <a href="magnet:?xt=urn:btih:{_HASH}&dn=Abbey+Road">magnet</a>
      <font class="detDesc">Uploaded 03-14 2019, Size 512.3 MiB, ULed by someone</font>
    </td>
    <td align="right">1,204</td>
    <td align="right">17</td>
  </tr>
  <tr>
    <td class="vertTh"><a href="/browse/101">Music</a></td>
    <td>
      <div class="detName"><a href="/torrent/99/No_Magnet">Abbey Road Live</a></div>
      <font class="detDesc">Uploaded 01-01 2020, Size 1.2 GiB, ULed by other</font>
    </td>
    <td align="right">3</td>
    <td align="right">0</td>
  </tr>
  <tr><td colspan="4">pagination</td></tr>
</table>
</body></html>
"""


class TestPirateBayPlugin:
    def test_metadata(self) -> None:
        assert _mod.plugin.id == "tpb"
        assert _mod.plugin.name == "The Pirate Bay"
        assert _mod.plugin.enabled is True
        assert _mod.plugin.magnet_selector is None

    def test_search_url(self) -> None:
        assert _PirateBayPlugin().search_urls("abbey road", 1, {}) == [
            "https://tpb.party/search/abbey%20road/1/99/100"
        ]

    async def test_parses_rows(self, fetch_mock, make_response) -> None:
        fetch_mock.try_fetch_any.return_value = make_response(
            _SEARCH_HTML, "https://tpb.party/search/abbey%20road/1/99/100"
        )
        plugin = _PirateBayPlugin(fetch_mock)

        results = await plugin.search("abbey road")

        assert len(results) == 2
        first, second = results
        assert first.title == "The Beatles - Abbey Road [FLAC]"
        assert first.url == "https://tpb.party/torrent/1234/Abbey_Road"
        assert first.magnet_uri == f"magnet:?xt=urn:btih:{_HASH}&dn=Abbey+Road"
        assert first.size == "512.3 MiB"
        assert first.seeders == 1204
        assert first.leechers == 17
        assert first.source == "The Pirate Bay"
        assert first.plugin_id == "tpb"

        assert second.title == "Abbey Road Live"
        assert second.magnet_uri is None
        assert second.size == "1.2 GiB"
        assert second.seeders == 3

    async def test_sends_referer(self, fetch_mock, make_response) -> None:
        fetch_mock.try_fetch_any.return_value = make_response("<html></html>")
        await _PirateBayPlugin(fetch_mock).search("abbey road")

        kwargs = fetch_mock.try_fetch_any.call_args.kwargs
        assert kwargs["headers"]["Referer"] == "https://tpb.party/"

    async def test_no_response_raises(self, fetch_mock) -> None:
        fetch_mock.try_fetch_any.return_value = None
        with pytest.raises(PluginFetchError):
            await _PirateBayPlugin(fetch_mock).search("abbey road")
