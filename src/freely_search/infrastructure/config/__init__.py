from __future__ import annotations

from .load import load_config
from .schema import AppConfig, EnvOverrides, SearchConfig

__all__ = ["AppConfig", "EnvOverrides", "SearchConfig", "load_config"]
