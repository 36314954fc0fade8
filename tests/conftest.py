"""Shared test fixtures for the freely-search test suite."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
import respx

from freely_search.domain.entities import Candidate
from freely_search.infrastructure.config.schema import SearchConfig
from freely_search.infrastructure.http.fetch_client import FetchClient

ABBEY_HASH = "c12fe1c06bba254a9dc9f519b335aa7c1367a88a"


# ---------------------------------------------------------------------------
# Domain entity fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def candidate() -> Candidate:
    """Minimal magnet-bearing candidate."""
    return Candidate(
        title="The Beatles - Abbey Road (1969) [FLAC]",
        url="https://tpb.test/torrent/1/abbey-road",
        magnet_uri=f"magnet:?xt=urn:btih:{ABBEY_HASH}&dn=Abbey+Road",
        size="512.3 MiB",
        seeders=120,
        leechers=4,
        source="The Pirate Bay",
        plugin_id="tpb",
    )


# ---------------------------------------------------------------------------
# Plugin fixtures
# ---------------------------------------------------------------------------


class FakePlugin:
    """In-memory plugin returning canned candidates (or raising)."""

    def __init__(
        self,
        plugin_id: str,
        results: list[Candidate] | None = None,
        *,
        error: Exception | None = None,
        enabled: bool = True,
        name: str | None = None,
    ) -> None:
        self.id = plugin_id
        self.name = name or plugin_id.upper()
        self.enabled = enabled
        self.data: dict[str, Any] = {}
        self.magnet_selector = None
        self._results = results or []
        self._error = error
        self.queries: list[str] = []

    def request_options(self, data: Any) -> dict[str, str]:
        return {}

    async def search(self, query: str, page: int = 1) -> list[Candidate]:
        self.queries.append(query)
        if self._error is not None:
            raise self._error
        # Fresh copies: the orchestrator mutates candidates in place.
        return [
            Candidate(
                title=c.title,
                url=c.url,
                magnet_uri=c.magnet_uri,
                size=c.size,
                seeders=c.seeders,
                leechers=c.leechers,
            )
            for c in self._results
        ]


@pytest.fixture()
def fake_plugin_cls() -> type[FakePlugin]:
    return FakePlugin


# ---------------------------------------------------------------------------
# Infrastructure fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def search_config() -> SearchConfig:
    """Search tuning with a short deadline for fast tests."""
    return SearchConfig(deadline_ms=200)


@pytest.fixture()
def fetch_mock() -> MagicMock:
    """FetchClient stand-in with async ``fetch``/``try_fetch_any``."""
    mock = MagicMock(spec=FetchClient)
    mock.fetch = AsyncMock()
    mock.try_fetch_any = AsyncMock()
    mock.aclose = AsyncMock()
    return mock


@pytest.fixture()
async def http_client() -> httpx.AsyncClient:
    """Real httpx.AsyncClient for use with respx mocking."""
    async with httpx.AsyncClient() as client:
        yield client


@pytest.fixture()
def respx_mock() -> respx.MockRouter:
    """Explicit respx mock router for request interception."""
    with respx.mock(assert_all_called=False) as router:
        yield router


def html_response(
    body: str,
    url: str = "https://site.test/",
    status_code: int = 200,
    headers: list[tuple[str, str]] | None = None,
) -> httpx.Response:
    """httpx.Response bound to a request so ``response.url`` works."""
    return httpx.Response(
        status_code,
        text=body,
        headers=headers,
        request=httpx.Request("GET", url),
    )


@pytest.fixture()
def make_response() -> Callable[..., httpx.Response]:
    return html_response
