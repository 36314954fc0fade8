"""Domain protocols for scraper plugins."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Protocol, Union, runtime_checkable

from freely_search.domain.entities import Candidate

# A magnet resolver is either a CSS selector (the ``href`` of its first
# match is used) or a callback receiving the parsed detail page.
MagnetSelector = Union[str, Callable[[Any], Union[str, None]]]

SessionUpdate = Callable[[Mapping[str, Any]], None]


@runtime_checkable
class ScraperPlugin(Protocol):
    """
    Protocol every scraper plugin satisfies.

    A plugin file must export a module-level ``plugin`` (or an iterable
    ``plugins``) whose objects:
    - have ``id``, ``name``, ``enabled`` and a ``data`` SessionState dict
    - implement: async def search(query, page) -> list[Candidate]
    """

    id: str
    name: str
    enabled: bool
    data: dict[str, Any]

    async def search(self, query: str, page: int = 1) -> list[Candidate]: ...


@runtime_checkable
class SupportsLogin(Protocol):
    """Plugins that need a session or token before searches succeed."""

    async def login(self) -> bool: ...


@runtime_checkable
class SupportsDetailMagnet(Protocol):
    """Plugins whose rows may need a detail-page fetch to obtain a magnet."""

    magnet_selector: MagnetSelector | None

    def request_options(self, data: Mapping[str, Any]) -> dict[str, str]: ...


class RowExtractor(Protocol):
    """Turns one matched result row into zero or one candidate.

    ``document`` and ``row`` are parse-tree handles; ``response`` is the
    final (post-redirect) HTTP response, for resolving relative links.
    """

    def __call__(
        self, document: Any, row: Any, response: Any
    ) -> Candidate | None: ...
