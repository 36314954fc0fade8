"""Common infrastructure utilities."""

from __future__ import annotations

from .converters import format_size, to_count, to_int

__all__ = [
    "format_size",
    "to_count",
    "to_int",
]
