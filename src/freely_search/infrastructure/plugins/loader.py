from __future__ import annotations

import importlib.util
import traceback
from pathlib import Path
from types import ModuleType

import structlog

from freely_search.domain.plugins import PluginLoadError, ScraperPlugin

log = structlog.get_logger(__name__)


def _import_module_from_path(path: Path) -> ModuleType:
    module_name = f"freely_search_dynamic_plugin_{path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, str(path))
    if spec is None or spec.loader is None:
        raise PluginLoadError(f"Could not create import spec for {path}")

    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except SyntaxError as e:
        tb = traceback.format_exc()
        raise PluginLoadError(f"SyntaxError while importing {path}:\n{tb}") from e
    except Exception as e:
        tb = traceback.format_exc()
        raise PluginLoadError(f"Error while importing {path}:\n{tb}") from e

    return module


def _validate(obj: object, path: Path) -> ScraperPlugin:
    if not isinstance(obj, ScraperPlugin):
        raise PluginLoadError(
            f"{path}: plugin object {obj!r} must provide id, name, enabled, "
            "data and an async search(query, page)"
        )
    if not isinstance(obj.id, str) or not obj.id.strip():
        raise PluginLoadError(f"{path}: plugin id must be a non-empty string")
    return obj


def load_python_plugins(path: Path) -> list[ScraperPlugin]:
    """Import a plugin file and return the plugins it exports.

    A file exports either a module-level ``plugin`` or an iterable
    ``plugins`` (one file may contribute several page-specific adapters).
    """
    try:
        module = _import_module_from_path(path)
    except PluginLoadError:
        log.error("plugin_load_failed", plugin_file=str(path))
        raise

    if hasattr(module, "plugins"):
        exported = list(module.plugins)
    elif hasattr(module, "plugin"):
        exported = [module.plugin]
    else:
        raise PluginLoadError(f"{path}: module exports neither 'plugin' nor 'plugins'")

    return [_validate(obj, path) for obj in exported]
