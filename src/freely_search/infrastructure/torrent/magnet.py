"""Magnet URI parsing, merging and synthesis.

Pure transformation logic with no I/O.  A magnet carries a content
topic (``xt``, normally ``urn:btih:<infohash>``), an optional display
name (``dn``) and any number of trackers (``tr``).
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from urllib.parse import parse_qs, quote, urlsplit

_INFO_HASH_RE = re.compile(r"xt=urn:btih:([a-fA-F0-9]{40})")
_HEX_HASH_RE = re.compile(r"^[A-Fa-f0-9]{40}$")

# Bare 40-hex token inside a detail URL (e.g. ``/<INFOHASH>/album-name``).
URL_HASH_RE = re.compile(r"\b([A-Fa-f0-9]{40})\b")

# Encode like JavaScript's encodeURIComponent.
_COMPONENT_SAFE = "!~*'()"

DEFAULT_TRACKERS: tuple[str, ...] = (
    "udp://tracker.opentrackr.org:1337/announce",
    "udp://open.stealth.si:80/announce",
    "udp://tracker.torrent.eu.org:451/announce",
    "udp://exodus.desync.com:6969/announce",
)


@dataclass(frozen=True)
class MagnetParts:
    xt: str
    dn: str | None = None
    trackers: tuple[str, ...] = ()


def parse(magnet_uri: str | None) -> MagnetParts | None:
    """Split a magnet URI into ``xt``/``dn``/``tr``; None without an ``xt``."""
    if not magnet_uri:
        return None
    parts = urlsplit(magnet_uri.strip())
    if parts.scheme.lower() != "magnet":
        return None

    params = parse_qs(parts.query, keep_blank_values=True)
    xt_values = params.get("xt") or []
    if not xt_values or not xt_values[0]:
        return None

    dn_values = params.get("dn") or []
    return MagnetParts(
        xt=xt_values[0],
        dn=dn_values[0] if dn_values else None,
        trackers=tuple(params.get("tr") or ()),
    )


def build(parts: MagnetParts) -> str:
    """Serialize *parts* back into a magnet URI."""
    magnet = f"magnet:?xt={parts.xt}"
    if parts.dn:
        magnet += f"&dn={quote(parts.dn, safe=_COMPONENT_SAFE)}"
    for tracker in parts.trackers:
        magnet += f"&tr={quote(tracker, safe=_COMPONENT_SAFE)}"
    return magnet


def combine(magnets: Iterable[str]) -> str | None:
    """Merge magnets for the same content into one with every tracker.

    Takes the first ``xt``, the first non-empty ``dn`` and the ordered
    union of all trackers.  Returns None when nothing parses.
    """
    parsed = [p for p in (parse(m) for m in magnets) if p is not None]
    if not parsed:
        return None

    dn = next((p.dn for p in parsed if p.dn), None)
    trackers = list(dict.fromkeys(tr for p in parsed for tr in p.trackers))
    return build(MagnetParts(xt=parsed[0].xt, dn=dn, trackers=tuple(trackers)))


def derive_from_info_hash(info_hash: str, display_name: str = "") -> str | None:
    """Synthesize a magnet from a bare 40-hex infohash plus default trackers."""
    ih = (info_hash or "").strip()
    if not _HEX_HASH_RE.match(ih):
        return None
    return build(
        MagnetParts(
            xt=f"urn:btih:{ih.upper()}",
            dn=display_name or None,
            trackers=DEFAULT_TRACKERS,
        )
    )


def extract_info_hash(magnet_uri: str | None) -> str | None:
    """Lowercased 40-hex infohash from a magnet's ``xt``, or None."""
    if not magnet_uri:
        return None
    match = _INFO_HASH_RE.search(magnet_uri)
    return match.group(1).lower() if match else None


def hash_in_url(url: str | None) -> str | None:
    """Return a bare 40-hex hash embedded in *url*, if any."""
    if not url:
        return None
    match = URL_HASH_RE.search(url)
    return match.group(1) if match else None


def magnet_from_url(url: str | None, display_name: str = "") -> str | None:
    """Magnet synthesized from a 40-hex hash embedded in a detail URL."""
    info_hash = hash_in_url(url)
    if info_hash is None:
        return None
    return derive_from_info_hash(info_hash, display_name)
