from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class SearchRequest:
    """Free-text search input as handed over by the caller."""

    title: str = ""
    artist: str = ""

    @property
    def combined(self) -> str:
        """Title and artist joined by a space (either may be missing)."""
        title = (self.title or "").strip()
        artist = (self.artist or "").strip()
        if title and artist:
            return f"{title} {artist}"
        return title or artist


@dataclass
class Candidate:
    """One search result, raw at first and scored later in the pipeline.

    Mutable on purpose: the orchestrator fills in ``magnet_uri``,
    ``info_hash`` and ``score`` as the candidate moves through the stages.
    """

    title: str
    url: str | None = None
    magnet_uri: str | None = None
    size: str = ""
    seeders: int = 0
    leechers: int = 0

    # Provenance
    source: str = ""
    query_variant: str = ""
    plugin_id: str = ""

    # Derived
    info_hash: str | None = None
    score: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Output shape handed to the caller (no internal provenance)."""
        return {
            "source": self.source,
            "title": self.title,
            "url": self.url,
            "magnet_uri": self.magnet_uri,
            "size": self.size,
            "seeders": self.seeders,
            "leechers": self.leechers,
            "info_hash": self.info_hash,
            "score": self.score,
        }


@dataclass(frozen=True)
class PluginInfo:
    id: str
    name: str
    enabled: bool
