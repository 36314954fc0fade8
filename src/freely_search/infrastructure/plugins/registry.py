"""Plugin registry: bookkeeping, SessionState merges and login kick-off."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from functools import partial
from pathlib import Path
from typing import Any

import structlog

from freely_search.domain.entities import PluginInfo
from freely_search.domain.plugins import (
    DuplicatePluginError,
    PluginNotFoundError,
    ScraperPlugin,
    SupportsLogin,
)
from freely_search.infrastructure.http.fetch_client import FetchClient

from .loader import load_python_plugins

log = structlog.get_logger(__name__)


class PluginRegistry:
    """
    Owns the set of scraper plugins for the lifetime of the process.

    register():
      - stores the plugin, binds the shared fetch client and the session
        updater, and starts a background login for enabled plugins that
        declare one

    login():
      - coalesces: while a login for a plugin is in flight, callers get
        the same task instead of a second concurrent login
    """

    def __init__(
        self,
        plugin_dir: Path | None = None,
        *,
        fetch: FetchClient | None = None,
        toggles: Mapping[str, bool] | None = None,
    ) -> None:
        self._plugin_dir = plugin_dir
        self._fetch = fetch
        self._toggles = dict(toggles or {})
        self._plugins: dict[str, ScraperPlugin] = {}
        self._login_tasks: dict[str, asyncio.Task[bool]] = {}
        self._pending_logins: list[str] = []
        self._discovered = False

    @property
    def plugin_dir(self) -> Path | None:
        return self._plugin_dir

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def discover(self) -> None:
        """Import every ``*.py`` file in the plugin directory and register it.

        Note: load errors and duplicate ids propagate, by design.
        """
        if self._discovered:
            return
        self._discovered = True

        if self._plugin_dir is None:
            return
        if not self._plugin_dir.is_dir():
            log.warning("plugin_directory_not_found", directory=str(self._plugin_dir))
            return

        files = sorted(
            p
            for p in self._plugin_dir.iterdir()
            if p.is_file() and p.suffix == ".py" and not p.name.startswith("_")
        )
        for path in files:
            for plugin in load_python_plugins(path):
                self.register(plugin)

        log.info(
            "plugins_discovered",
            count=len(self._plugins),
            files=len(files),
            directory=str(self._plugin_dir),
        )
        if not self._plugins:
            log.warning("no_plugins_found", directory=str(self._plugin_dir))

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def register(self, plugin: ScraperPlugin) -> None:
        if plugin.id in self._plugins:
            raise DuplicatePluginError(f"Plugin id '{plugin.id}' already exists")

        if plugin.id in self._toggles:
            plugin.enabled = self._toggles[plugin.id]

        bind = getattr(plugin, "bind", None)
        if callable(bind):
            bind(
                fetch=self._fetch,
                session_update=partial(self.set_plugin_data, plugin.id),
            )

        self._plugins[plugin.id] = plugin
        log.info(
            "plugin_registered",
            plugin_id=plugin.id,
            plugin_name=plugin.name,
            enabled=plugin.enabled,
        )

        if plugin.enabled and isinstance(plugin, SupportsLogin):
            try:
                self.login(plugin.id)
            except RuntimeError:
                # No running event loop (sync registration); start later.
                self._pending_logins.append(plugin.id)
                log.debug("plugin_login_deferred", plugin_id=plugin.id)

    def set_plugin_data(self, plugin_id: str, partial_data: Mapping[str, Any]) -> None:
        """Shallow-merge *partial_data* into the plugin's SessionState."""
        plugin = self._plugins.get(plugin_id)
        if plugin is None:
            log.warning("plugin_data_unknown_plugin", plugin_id=plugin_id)
            return
        plugin.data = {**(plugin.data or {}), **partial_data}

    def list(self) -> list[PluginInfo]:
        return [
            PluginInfo(id=p.id, name=p.name, enabled=bool(p.enabled))
            for p in self._plugins.values()
        ]

    def get(self, plugin_id: str) -> ScraperPlugin:
        try:
            return self._plugins[plugin_id]
        except KeyError:
            raise PluginNotFoundError(f"Plugin '{plugin_id}' not found") from None

    def enabled_plugins(self) -> list[ScraperPlugin]:
        return [p for p in self._plugins.values() if p.enabled]

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def login(self, plugin_id: str) -> asyncio.Task[bool]:
        """Start (or join) a background login; requires a running loop."""
        running = self._login_tasks.get(plugin_id)
        if running is not None and not running.done():
            return running

        plugin = self.get(plugin_id)
        task = asyncio.get_running_loop().create_task(
            self._run_login(plugin), name=f"login:{plugin_id}"
        )
        self._login_tasks[plugin_id] = task
        log.debug("plugin_login_started", plugin_id=plugin_id)
        return task

    async def _run_login(self, plugin: ScraperPlugin) -> bool:
        try:
            ok = bool(await plugin.login())  # type: ignore[attr-defined]
        except Exception as exc:  # noqa: BLE001
            log.warning("plugin_login_error", plugin_id=plugin.id, error=str(exc))
            return False

        if ok:
            log.info("plugin_login_success", plugin_id=plugin.id)
        else:
            log.warning("plugin_login_failure", plugin_id=plugin.id)
        return ok

    def login_task(self, plugin_id: str) -> asyncio.Task[bool] | None:
        """The most recent login task for *plugin_id*, if one was started."""
        return self._login_tasks.get(plugin_id)

    async def wait_for_logins(self) -> dict[str, bool]:
        """Start deferred logins and wait for every login task to settle."""
        while self._pending_logins:
            self.login(self._pending_logins.pop(0))
        if not self._login_tasks:
            return {}
        ids = list(self._login_tasks)
        results = await asyncio.gather(*self._login_tasks.values())
        return dict(zip(ids, results))

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def cleanup(self) -> None:
        """Cancel unfinished logins and let plugins release their clients."""
        for task in self._login_tasks.values():
            if not task.done():
                task.cancel()
        self._login_tasks.clear()

        for plugin in self._plugins.values():
            cleanup = getattr(plugin, "cleanup", None)
            if not callable(cleanup):
                continue
            try:
                await cleanup()
            except Exception:  # noqa: BLE001
                log.warning("plugin_cleanup_failed", plugin_id=plugin.id, exc_info=True)
