"""Query expansion for differently-indexed sites.

Some indexers strip parentheticals, some match artist-first, some only
list a film score under "soundtrack".  Asking each site a handful of
phrasings is cheaper than adding more sites.
"""

from __future__ import annotations

import re

MAX_VARIANTS = 6

_SOUNDTRACK_RE = re.compile(r"\b(?:soundtrack|ost)\b", re.IGNORECASE)
_PARENTHETICAL_RE = re.compile(r"\(.*?\)")


def _clean(text: str) -> str:
    return " ".join(text.split())


def build_query_variants(
    title: str | None,
    artist: str | None,
    *,
    limit: int = MAX_VARIANTS,
) -> list[str]:
    """Ordered, de-duplicated query phrasings for a (title, artist) pair.

    Order: raw combination, title alone, artist-then-title, two
    soundtrack phrasings (unless the title already says so), and the
    raw combination without parentheticals.
    """
    base_title = _clean(title or "")
    base_artist = _clean(artist or "")
    if base_title and base_artist:
        raw = f"{base_title} {base_artist}"
    else:
        raw = base_title or base_artist

    candidates: list[str] = [raw]
    if base_title:
        candidates.append(base_title)
    if base_artist:
        candidates.append(_clean(f"{base_artist} {base_title}"))
    if base_title and base_artist and not _SOUNDTRACK_RE.search(base_title):
        candidates.append(f"{base_title} soundtrack {base_artist}")
        candidates.append(f"{base_title} original soundtrack {base_artist}")
    candidates.append(_clean(_PARENTHETICAL_RE.sub(" ", raw)))

    variants = [v for v in dict.fromkeys(candidates) if v]
    return variants[:limit]
