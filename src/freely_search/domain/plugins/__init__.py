from .base import (
    MagnetSelector,
    RowExtractor,
    ScraperPlugin,
    SessionUpdate,
    SupportsDetailMagnet,
    SupportsLogin,
)
from .exceptions import (
    DuplicatePluginError,
    PluginError,
    PluginFetchError,
    PluginLoadError,
    PluginLoginError,
    PluginNotFoundError,
)

__all__ = [
    "DuplicatePluginError",
    "MagnetSelector",
    "PluginError",
    "PluginFetchError",
    "PluginLoadError",
    "PluginLoginError",
    "PluginNotFoundError",
    "RowExtractor",
    "ScraperPlugin",
    "SessionUpdate",
    "SupportsDetailMagnet",
    "SupportsLogin",
]
