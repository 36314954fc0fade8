"""Port for plugin bookkeeping."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from freely_search.domain.entities import PluginInfo
from freely_search.domain.plugins.base import ScraperPlugin


@runtime_checkable
class PluginRegistryPort(Protocol):
    """Synchronous interface for registering, listing and retrieving plugins."""

    def register(self, plugin: ScraperPlugin) -> None: ...
    def set_plugin_data(self, plugin_id: str, partial: Mapping[str, Any]) -> None: ...
    def list(self) -> list[PluginInfo]: ...
    def get(self, plugin_id: str) -> ScraperPlugin: ...
    def enabled_plugins(self) -> list[ScraperPlugin]: ...
