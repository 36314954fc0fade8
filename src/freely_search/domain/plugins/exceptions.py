"""Plugin system exceptions."""

from __future__ import annotations


class PluginError(Exception):
    """Base class for all plugin-related errors."""


class PluginLoadError(PluginError):
    """Raised when a plugin file fails to import or does not match the protocol."""


class PluginNotFoundError(PluginError):
    """Raised when a plugin id is not known to the registry."""


class DuplicatePluginError(PluginError):
    """Raised when two plugins resolve to the same id."""


class PluginFetchError(PluginError):
    """Raised when a scraper exhausts every mirror without a usable response."""


class PluginLoginError(PluginError):
    """Raised inside a login flow when the site refuses the session."""
