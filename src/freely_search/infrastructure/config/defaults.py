"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "freely-search",
    "environment": "dev",
    "plugins": {
        "plugin_dir": "./plugins",
        "toggles": {},
    },
    "http": {
        "timeout_seconds": 10.0,
        "mirror_timeout_seconds": 3.0,
        "max_redirects": 5,
        "user_agent": (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/125.0 Safari/537.36"
        ),
    },
    "search": {
        "deadline_ms": 3000,
        "min_score": 1,
        "selection_fraction": 0.25,
        "selection_min": 5,
        "selection_max": 15,
        "fallback_limit": 15,
        "max_variants": 6,
        "detail_concurrency": 8,
        "detail_retry_delay_ms": 350,
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
}
