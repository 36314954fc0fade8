"""Port for detail-page magnet resolution."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol, runtime_checkable

from freely_search.domain.plugins.base import MagnetSelector


@runtime_checkable
class DetailMagnetResolverPort(Protocol):
    """Fetches a detail page and evaluates a magnet selector against it.

    Returns ``None`` when the page cannot be fetched or holds no magnet;
    never raises for network or HTTP failures.
    """

    async def resolve(
        self,
        detail_url: str,
        selector: MagnetSelector,
        headers: Mapping[str, str] | None = None,
    ) -> str | None: ...
