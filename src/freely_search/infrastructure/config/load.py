"""Layered configuration loading.

Layers, lowest precedence first: built-in defaults, the YAML file,
``FREELY_*`` environment variables (optionally seeded from a .env file),
then CLI overrides.  Every layer is folded into the sectioned YAML shape
before merging, so ``search_min_score=40`` and
``{"search": {"min_score": 40}}`` mean the same thing at any layer.
"""

from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv

from .defaults import DEFAULT_CONFIG
from .schema import AppConfig, EnvOverrides

_TOP_LEVEL_KEYS = ("app_name", "environment")

# Flat key prefix -> section; the remainder of the key is the section key.
_PREFIX_SECTIONS: dict[str, str] = {
    "http_": "http",
    "search_": "search",
    "log_": "logging",
}

# Flat keys whose section key is not a plain prefix strip.
_PLUGIN_KEYS: dict[str, str] = {
    "plugin_dir": "plugin_dir",
    "plugin_toggles": "toggles",
}


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Merge *override* into *base* in place; nested mappings merge key by key."""
    for key, value in override.items():
        current = base.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            _deep_merge(current, value)
        else:
            base[key] = value
    return base


def _section_of(flat_key: str) -> tuple[str, str] | None:
    if flat_key in _PLUGIN_KEYS:
        return "plugins", _PLUGIN_KEYS[flat_key]
    for prefix, section in _PREFIX_SECTIONS.items():
        if flat_key.startswith(prefix) and len(flat_key) > len(prefix):
            return section, flat_key[len(prefix):]
    return None


def _sectioned(layer: Mapping[str, Any]) -> dict[str, Any]:
    """Fold one layer into ``{app_name, environment, plugins, http, search, logging}``.

    Sectioned blocks are copied as-is; flat keys such as
    ``http_max_redirects`` or ``search_deadline_ms`` are moved into their
    section.  Keys that belong nowhere are dropped.
    """
    out: dict[str, Any] = {}
    for key, value in layer.items():
        if key in _TOP_LEVEL_KEYS:
            out[key] = value
        elif isinstance(value, Mapping) and key in ("plugins", *_PREFIX_SECTIONS.values()):
            out.setdefault(key, {}).update(value)
        else:
            target = _section_of(key)
            if target is not None:
                section, section_key = target
                out.setdefault(section, {})[section_key] = value
    return out


def _read_yaml_config(config_path: Path) -> dict[str, Any]:
    if not config_path.exists():
        raise FileNotFoundError(config_path)
    parsed = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ValueError(f"Config YAML must be a mapping, got: {type(parsed)!r}")
    return parsed


def load_config(
    *,
    config_path: Path | None = None,
    dotenv_path: Path | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> AppConfig:
    """Merge every configuration layer and validate the result.

    Raises:
        FileNotFoundError: an explicitly given YAML or .env file is missing.
        ValueError: the YAML document is not a mapping.
        pydantic.ValidationError: the merged values are invalid.
    """
    # Variables already set in the process win over the .env file.
    if dotenv_path is not None:
        if not dotenv_path.exists():
            raise FileNotFoundError(dotenv_path)
        load_dotenv(dotenv_path, override=False)

    layers: list[Mapping[str, Any]] = []
    if config_path is not None:
        layers.append(_read_yaml_config(config_path))
    layers.append(EnvOverrides().to_update_dict())
    layers.append(cli_overrides or {})

    merged = _sectioned(deepcopy(DEFAULT_CONFIG))
    for layer in layers:
        _deep_merge(merged, _sectioned(layer))

    return AppConfig.model_validate(merged)
