"""Type conversion utilities."""

from __future__ import annotations

import re

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d[\d,\s]*)")

_SIZE_UNITS = ("B", "KiB", "MiB", "GiB", "TiB")


def to_int(raw: str | int | None) -> int | None:
    """Convert string or int to int, return None if invalid.

    Reads the leading number of a cell, ignoring thousands separators:
        - None → None
        - int → int (passthrough)
        - "123" → 123
        - "1,234" → 1234
        - " 42 seeds" → 42
        - "" / "n/a" → None
    """
    if raw is None:
        return None

    if isinstance(raw, int):
        return raw

    if isinstance(raw, str):
        match = _LEADING_INT_RE.match(raw)
        if not match:
            return None
        txt = "".join(ch for ch in match.group(1) if ch.isdigit() or ch == "-")
        try:
            return int(txt)
        except ValueError:
            return None

    return None


def to_count(raw: str | int | None) -> int:
    """Seeder/leecher count: non-negative int, 0 when unreadable."""
    value = to_int(raw)
    if value is None or value < 0:
        return 0
    return value


def format_size(num_bytes: int | float | None) -> str:
    """Render a byte count with binary units ("1.5 GiB"); "" for unknown."""
    if num_bytes is None or num_bytes < 0:
        return ""
    size = float(num_bytes)
    for unit in _SIZE_UNITS:
        if size < 1024 or unit == _SIZE_UNITS[-1]:
            if unit == "B":
                return f"{int(size)} B"
            return f"{size:.1f} {unit}"
        size /= 1024
    return ""
