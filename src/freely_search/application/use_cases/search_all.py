"""Federated search use case.

(title, artist) -> query variants -> parallel plugin fan-out under a
deadline -> provisional scoring -> magnet resolution for a subset
-> penalized re-scoring -> final pool -> de-duplication.

No failure inside a plugin, the magnet resolver or a scoring step
escapes ``execute``; every failure degrades to fewer results.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Iterable
from typing import Protocol

import structlog

from freely_search.domain.entities import Candidate, SearchRequest
from freely_search.domain.plugins.base import ScraperPlugin
from freely_search.domain.ports.magnet_resolver import DetailMagnetResolverPort
from freely_search.domain.ports.plugin_registry import PluginRegistryPort

log = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Protocols: what this use case needs from its dependencies.
# Infrastructure components satisfy these via structural subtyping.
# ---------------------------------------------------------------------------


class _SearchConfig(Protocol):
    """Configuration values consumed by SearchAllUseCase."""

    deadline_ms: int
    min_score: int
    selection_fraction: float
    selection_min: int
    selection_max: int
    fallback_limit: int
    max_variants: int
    detail_concurrency: int


class _ExpandFn(Protocol):
    def __call__(self, title: str, artist: str, *, limit: int) -> list[str]: ...


_ScoreFn = Callable[[str, str, int], int]
_PenaltyFn = Callable[[str], int]
_DedupeFn = Callable[[Iterable[Candidate]], list[Candidate]]
_MagnetFromUrlFn = Callable[[str, str], str | None]
_InfoHashFn = Callable[[str | None], str | None]


class SearchAllUseCase:
    """Fans a music query out to every enabled plugin and ranks the result.

    Flow:
        1. Expand (title, artist) into query variants
        2. One task per (plugin x variant); each catches its own failure
        3. Harvest whatever finished before the deadline
        4. Provisional score; select a subset for magnet resolution
        5. Derive magnets from URL hashes, else ask the detail resolver
        6. Re-score the subset with the content-type penalty
        7. Keep scored, magnet-bearing candidates (with a fallback)
        8. De-duplicate
    """

    def __init__(
        self,
        plugins: PluginRegistryPort,
        magnet_resolver: DetailMagnetResolverPort,
        config: _SearchConfig,
        *,
        expand_fn: _ExpandFn,
        score_fn: _ScoreFn,
        penalty_fn: _PenaltyFn,
        dedupe_fn: _DedupeFn,
        magnet_from_url_fn: _MagnetFromUrlFn,
        info_hash_fn: _InfoHashFn,
    ) -> None:
        self._plugins = plugins
        self._magnet_resolver = magnet_resolver
        self._expand = expand_fn
        self._score = score_fn
        self._penalty = penalty_fn
        self._dedupe = dedupe_fn
        self._magnet_from_url = magnet_from_url_fn
        self._info_hash = info_hash_fn

        self.deadline_ms = config.deadline_ms
        self.min_score = config.min_score
        self._selection_fraction = config.selection_fraction
        self._selection_min = config.selection_min
        self._selection_max = config.selection_max
        self._fallback_limit = config.fallback_limit
        self._max_variants = config.max_variants
        self._detail_concurrency = max(1, config.detail_concurrency)

        # Tasks that lost the deadline race; referenced until they finish.
        self._stragglers: set[asyncio.Task[list[Candidate]]] = set()

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def execute(
        self,
        request: SearchRequest,
        *,
        deadline_ms: int | None = None,
    ) -> list[Candidate]:
        """Run the federated search; always returns a list (possibly empty)."""
        t0 = time.perf_counter()
        combined = ""
        try:
            combined = request.combined
            if not combined:
                return []
            return await self._run(request, combined, deadline_ms or self.deadline_ms)
        except Exception:  # noqa: BLE001
            log.warning("search_failed", query=combined, exc_info=True)
            return []
        finally:
            log.debug(
                "search_duration",
                query=combined,
                duration_ms=round((time.perf_counter() - t0) * 1000),
            )

    async def _run(
        self, request: SearchRequest, combined: str, deadline_ms: int
    ) -> list[Candidate]:
        variants = self._expand(
            request.title, request.artist, limit=self._max_variants
        )
        plugins = self._plugins.enabled_plugins()
        log.info(
            "search_started",
            query=combined,
            variants=len(variants),
            plugins=[p.id for p in plugins],
        )
        if not variants or not plugins:
            return []

        harvested = await self._fan_out(plugins, variants, deadline_ms)

        # --- provisional scoring ---
        for c in harvested:
            self._score_candidate(c, combined, penalize=False)

        selected = self._select_for_resolution(harvested)
        await self._resolve_magnets(selected, combined)

        final = [c for c in harvested if c.score >= self.min_score and c.magnet_uri]
        used_fallback = False
        if not final:
            used_fallback = True
            final = sorted(
                (c for c in selected if c.magnet_uri),
                key=lambda c: c.score,
                reverse=True,
            )[: self._fallback_limit]

        results = self._dedupe(final)
        log.info(
            "search_completed",
            query=combined,
            harvested=len(harvested),
            selected=len(selected),
            final=len(final),
            results=len(results),
            fallback=used_fallback,
        )
        return results

    # ------------------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------------------

    async def _search_one(
        self, plugin: ScraperPlugin, variant: str
    ) -> list[Candidate]:
        """Search one plugin for one variant, catching and logging errors."""
        out: list[Candidate] = []
        try:
            for c in await plugin.search(variant, 1) or []:
                if not c.title:
                    continue
                c.query_variant = variant
                c.plugin_id = c.plugin_id or plugin.id
                c.source = c.source or plugin.name
                out.append(c)
        except Exception as exc:  # noqa: BLE001
            log.warning(
                "search_plugin_failed",
                plugin=plugin.id,
                query=variant,
                error=str(exc) or type(exc).__name__,
            )
            return []
        return out

    async def _fan_out(
        self,
        plugins: list[ScraperPlugin],
        variants: list[str],
        deadline_ms: int,
    ) -> list[Candidate]:
        tasks = [
            asyncio.create_task(
                self._search_one(plugin, variant),
                name=f"search:{plugin.id}:{variant}",
            )
            for plugin in plugins
            for variant in variants
        ]

        done, pending = await asyncio.wait(tasks, timeout=deadline_ms / 1000)
        if pending:
            log.info(
                "search_deadline_exceeded",
                deadline_ms=deadline_ms,
                finished=len(done),
                pending=len(pending),
            )
            for task in pending:
                self._stragglers.add(task)
                task.add_done_callback(self._stragglers.discard)

        harvested: list[Candidate] = []
        for task in tasks:
            if task in done and not task.cancelled():
                harvested.extend(task.result())

        log.debug("search_harvested", tasks=len(tasks), candidates=len(harvested))
        return harvested

    # ------------------------------------------------------------------
    # Scoring and selection
    # ------------------------------------------------------------------

    def _score_candidate(
        self, candidate: Candidate, combined: str, *, penalize: bool
    ) -> None:
        if candidate.magnet_uri:
            candidate.info_hash = self._info_hash(candidate.magnet_uri)
        query = candidate.query_variant or combined
        try:
            value = self._score(query, candidate.title, candidate.seeders or 0)
        except Exception:  # noqa: BLE001
            log.warning("score_failed", title=candidate.title, exc_info=True)
            value = 0
        if penalize:
            value = max(0, value - self._penalty(candidate.title))
        candidate.score = value

    def selection_size(self, count: int) -> int:
        """Top-K size when nothing clears the score threshold."""
        k = round(count * self._selection_fraction)
        return max(self._selection_min, min(self._selection_max, k))

    def _select_for_resolution(self, harvested: list[Candidate]) -> list[Candidate]:
        selected = [c for c in harvested if c.score >= self.min_score]
        if selected:
            return selected
        ranked = sorted(harvested, key=lambda c: c.score, reverse=True)
        return ranked[: self.selection_size(len(harvested))]

    # ------------------------------------------------------------------
    # Magnet resolution
    # ------------------------------------------------------------------

    async def _resolve_magnets(
        self, selected: list[Candidate], combined: str
    ) -> None:
        semaphore = asyncio.Semaphore(self._detail_concurrency)

        async def _resolve_one(candidate: Candidate) -> None:
            try:
                if not candidate.magnet_uri and candidate.url:
                    async with semaphore:
                        await self._find_magnet(candidate)
            except Exception:  # noqa: BLE001
                log.warning(
                    "magnet_resolution_failed",
                    plugin=candidate.plugin_id,
                    url=candidate.url,
                    exc_info=True,
                )
            self._score_candidate(candidate, combined, penalize=True)

        await asyncio.gather(*(_resolve_one(c) for c in selected))

    async def _find_magnet(self, candidate: Candidate) -> None:
        url = candidate.url or ""
        if url.startswith("magnet:"):
            candidate.magnet_uri = url
            return

        # Zero-network path: detail URLs that embed the infohash.
        derived = self._magnet_from_url(url, candidate.title)
        if derived:
            candidate.magnet_uri = derived
            return

        try:
            plugin = self._plugins.get(candidate.plugin_id)
        except Exception:  # noqa: BLE001
            return
        selector = getattr(plugin, "magnet_selector", None)
        if not selector:
            return

        request_options = getattr(plugin, "request_options", None)
        headers = request_options(dict(plugin.data)) if request_options else {}
        magnet = await self._magnet_resolver.resolve(url, selector, headers)
        if magnet:
            candidate.magnet_uri = magnet

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        """Cancel plugin searches still running from past deadlines."""
        stragglers = list(self._stragglers)
        for task in stragglers:
            task.cancel()
        if stragglers:
            await asyncio.gather(*stragglers, return_exceptions=True)
        self._stragglers.clear()
