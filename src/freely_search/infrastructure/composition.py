from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

import structlog

from freely_search.application.use_cases import SearchAllUseCase
from freely_search.infrastructure.config import AppConfig
from freely_search.infrastructure.http.fetch_client import FetchClient
from freely_search.infrastructure.plugins import DetailMagnetResolver, PluginRegistry
from freely_search.infrastructure.ranking import (
    build_query_variants,
    content_type_penalty,
    dedupe,
    score,
)
from freely_search.infrastructure.torrent import extract_info_hash, magnet_from_url

log = structlog.get_logger(__name__)


@dataclass
class AppState:
    """Resources shared for the lifetime of one process.

    Lifecycle managed by ``lifespan()``.
    """

    config: AppConfig
    fetch: FetchClient
    plugins: PluginRegistry
    magnet_resolver: DetailMagnetResolver
    search_all: SearchAllUseCase


@asynccontextmanager
async def lifespan(config: AppConfig) -> AsyncIterator[AppState]:
    """Composition root: build every component, yield them, clean up.

    Order matters:
        1. Fetch Client (shared by plugins and the detail resolver)
        2. Plugin Registry (binds the fetch client, kicks off logins)
        3. Detail Magnet Resolver
        4. Search use case (wired with the ranking functions)
    """
    # ========== 1) Fetch Client ==========
    fetch = FetchClient(
        user_agent=config.http_user_agent,
        timeout=config.http_timeout_seconds,
        max_redirects=config.http_max_redirects,
        mirror_timeout=config.http_mirror_timeout_seconds,
    )
    log.info("fetch_client_initialized")

    # ========== 2) Plugin Registry ==========
    plugins = PluginRegistry(
        plugin_dir=config.plugin_dir,
        fetch=fetch,
        toggles=config.plugin_toggles,
    )
    plugins.discover()

    # ========== 3) Detail Magnet Resolver ==========
    magnet_resolver = DetailMagnetResolver(
        fetch,
        retry_delay=config.search.detail_retry_delay_ms / 1000,
    )

    # ========== 4) Search use case ==========
    search_all = SearchAllUseCase(
        plugins,
        magnet_resolver,
        config.search,
        expand_fn=build_query_variants,
        score_fn=score,
        penalty_fn=content_type_penalty,
        dedupe_fn=dedupe,
        magnet_from_url_fn=magnet_from_url,
        info_hash_fn=extract_info_hash,
    )

    state = AppState(
        config=config,
        fetch=fetch,
        plugins=plugins,
        magnet_resolver=magnet_resolver,
        search_all=search_all,
    )
    log.info("app_startup_complete", plugins=len(plugins.list()))

    try:
        yield state
    finally:
        # ========== Cleanup (reverse order) ==========
        await search_all.aclose()
        await plugins.cleanup()
        await fetch.aclose()
        log.info("app_shutdown_complete")
