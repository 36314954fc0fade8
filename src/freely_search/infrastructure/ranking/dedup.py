"""Candidate de-duplication by content identity."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace

import structlog

from freely_search.domain.entities import Candidate
from freely_search.infrastructure.torrent.magnet import combine, extract_info_hash

from .scoring import normalize

log = structlog.get_logger(__name__)


def _rank_key(candidate: Candidate) -> tuple[int, int]:
    return (candidate.score or 0, candidate.seeders or 0)


def identity_key(candidate: Candidate) -> str:
    """Infohash from the magnet when present, else the normalized title."""
    return (
        candidate.info_hash
        or extract_info_hash(candidate.magnet_uri)
        or normalize(candidate.title)
    )


def dedupe(candidates: Iterable[Candidate]) -> list[Candidate]:
    """Collapse candidates describing the same torrent into one.

    The best-ranked member (score, then seeders) of each group is kept.
    When the group carries several distinct magnets they are merged so
    the survivor advertises every known tracker.  The output is sorted
    by (score, seeders) descending; inputs are not mutated.
    """
    groups: dict[str, list[Candidate]] = {}
    total = 0
    for candidate in candidates:
        total += 1
        key = identity_key(candidate)
        if not key:
            continue
        groups.setdefault(key, []).append(candidate)

    out: list[Candidate] = []
    for group in groups.values():
        group.sort(key=_rank_key, reverse=True)
        best = group[0]

        magnets = list(dict.fromkeys(c.magnet_uri for c in group if c.magnet_uri))
        magnet_uri = best.magnet_uri
        if len(magnets) > 1:
            magnet_uri = combine(magnets) or magnet_uri

        out.append(
            replace(
                best,
                magnet_uri=magnet_uri,
                info_hash=extract_info_hash(magnet_uri) or best.info_hash,
            )
        )

    out.sort(key=_rank_key, reverse=True)
    log.debug("dedupe_summary", input_count=total, output_count=len(out))
    return out
