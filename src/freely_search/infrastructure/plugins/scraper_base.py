"""Shared base classes for scraper plugins.

Eliminates boilerplate shared by every site adapter: identity,
SessionState ownership, fetch-client lifecycle and cleanup.

These classes live in the *infrastructure* layer because they depend
on ``httpx`` and ``structlog``.  The *domain* layer only knows
``ScraperPlugin``; plugins that inherit from them structurally satisfy
that Protocol.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

import httpx
import structlog

from freely_search.domain.entities import Candidate
from freely_search.domain.plugins.base import SessionUpdate
from freely_search.infrastructure.http.fetch_client import FetchClient


class ScraperBase:
    """Identity, SessionState and fetch-client plumbing for all plugins.

    Subclasses **must** set:
    - ``id`` (unique) and ``name`` (display name, used as ``source``)

    Subclasses **may** override:
    - ``enabled`` (default ``True``)
    - ``default_data`` (initial SessionState)
    """

    # --- Must be set by subclass ---
    id: str = ""
    name: str = ""

    # --- Overridable defaults ---
    enabled: bool = True
    default_data: Mapping[str, Any] = {}  # noqa: RUF012  # subclass overrides

    def __init__(self, fetch: FetchClient | None = None) -> None:
        self.data: dict[str, Any] = dict(self.default_data)
        self._fetch = fetch
        self._owns_fetch = fetch is None
        self._session_update: SessionUpdate | None = None
        self._log = structlog.get_logger(self.id or __name__)

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def bind(
        self,
        *,
        fetch: FetchClient | None = None,
        session_update: SessionUpdate | None = None,
    ) -> None:
        """Attach the shared fetch client and the registry's session updater."""
        if fetch is not None:
            self._fetch = fetch
            self._owns_fetch = False
        if session_update is not None:
            self._session_update = session_update

    def _update_data(self, partial: Mapping[str, Any]) -> None:
        """Merge *partial* into SessionState via the registry when bound."""
        if self._session_update is not None:
            self._session_update(partial)
        else:
            self.data = {**self.data, **partial}

    # ------------------------------------------------------------------
    # Client lifecycle
    # ------------------------------------------------------------------

    def _ensure_fetch(self) -> FetchClient:
        """Create a private fetch client if none was bound."""
        if self._fetch is None:
            self._fetch = FetchClient()
            self._owns_fetch = True
        return self._fetch

    async def cleanup(self) -> None:
        """Close a privately owned fetch client."""
        if self._fetch is not None and self._owns_fetch:
            await self._fetch.aclose()
            self._fetch = None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id!r} enabled={self.enabled}>"


class CustomScraper(ScraperBase):
    """Base for custom-protocol plugins (JSON APIs, token-gated sources).

    Subclasses **must** override ``search()``; they bypass the templated
    row-extraction pipeline but still return ``Candidate`` objects.
    """

    async def _safe_fetch(
        self,
        url: str,
        *,
        method: str = "GET",
        context: str = "",
        **kwargs: Any,
    ) -> httpx.Response | None:
        """Fetch *url* with structured error logging.

        Returns ``None`` on transport failure or non-2xx status instead
        of raising.
        """
        fetch = self._ensure_fetch()
        try:
            resp = await fetch.fetch(url, method=method, **kwargs)
        except httpx.TimeoutException:
            self._log.warning(f"{self.id}_timeout", url=url, context=context)
            return None
        except Exception as exc:  # noqa: BLE001
            self._log.warning(
                f"{self.id}_fetch_error",
                url=url,
                error=str(exc),
                context=context,
            )
            return None

        if not resp.is_success:
            self._log.warning(
                f"{self.id}_http_error",
                url=url,
                status=resp.status_code,
                context=context,
            )
            return None
        return resp

    def _safe_parse_json(
        self,
        response: httpx.Response,
        context: str = "",
    ) -> dict | list | None:
        """Parse JSON response with structured error logging."""
        try:
            return response.json()
        except (json.JSONDecodeError, ValueError):
            self._log.warning(
                f"{self.id}_invalid_json",
                url=str(response.url),
                context=context,
            )
            return None

    async def search(self, query: str, page: int = 1) -> list[Candidate]:
        """Search the source and return candidates.

        Subclasses **must** override this method.
        """
        raise NotImplementedError(f"{type(self).__name__}.search() not implemented")
