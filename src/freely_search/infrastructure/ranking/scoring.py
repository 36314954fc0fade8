"""Relevance scoring and content-type penalties for torrent candidates.

Pure transformation logic with no I/O.  A score is 0–100: textual
relevance contributes up to 80 points and seeder popularity up to 20.
Edit distance comes from **rapidfuzz** and diacritics are folded with
**unidecode**.
"""

from __future__ import annotations

import math
import re

from rapidfuzz.distance import Levenshtein
from unidecode import unidecode as _unidecode

# Non-alphanumeric runs collapse to a single space.
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")
_WORD_RE = re.compile(r"[a-z0-9]+")

# 4-digit year starting with 19xx or 20xx
_YEAR_RE = re.compile(r"\b(?:19|20)\d{2}\b")

# Query words longer than this count as keywords.
_CORE_WORD_MIN_LEN = 4

VIDEO_TERMS_RE = re.compile(
    r"\b(?:1080p|720p|2160p|4k|8k|480p|576p|1080i|bluray|blu-ray|bdrip|brrip"
    r"|webrip|web-dl|webdl|hdtv|dvdrip|dvd-r|dvdr|x264|x265|h264|h265|hevc|hd"
    r"|sd|cam|telesync|ts|xvid|divx|mkv|mp4|avi|movie|season|episode"
    r"|s\d{1,2}e\d{1,2})\b",
    re.IGNORECASE,
)
AUDIO_TERMS_RE = re.compile(
    r"\b(?:flac|alac|wav|ape|dsd|sacd|mp3|aac|ogg|opus|m4a|soundtrack|ost"
    r"|album|discography|lp|ep|320k|v0|24bit|16bit|cd)\b",
    re.IGNORECASE,
)
_CAM_TERMS_RE = re.compile(r"\b(?:cam|telesync|ts|telecine|camrip)\b", re.IGNORECASE)
_RIP_TERMS_RE = re.compile(
    r"\b(?:bluray|bdrip|brrip|web-dl|webdl|hdtv|dvd|dvdrip)\b", re.IGNORECASE
)

CAM_PENALTY = 12
RIP_PENALTY = 18
VIDEO_PENALTY = 15


def normalize(text: str | None) -> str:
    """Lowercase, fold diacritics, turn non-alphanumerics into single spaces."""
    folded = _unidecode((text or "").lower()).lower()
    return _NON_ALNUM_RE.sub(" ", folded).strip()


def words(normalized: str) -> list[str]:
    return _WORD_RE.findall(normalized)


def fuzzy_ratio(a: str | None, b: str | None) -> float:
    """1 - edit distance / longer length, over normalized strings."""
    na = normalize(a)
    nb = normalize(b)
    if not na or not nb:
        return 0.0
    return Levenshtein.normalized_similarity(na, nb)


def score(query: str | None, title: str | None, seeders: int = 0) -> int:
    """Relevance of *title* for *query*, boosted by seeders; 0–100."""
    raw_query = query or ""
    norm_query = normalize(raw_query)
    query_words = words(norm_query)
    if not query_words:
        return 0

    core_words = [w for w in query_words if len(w) >= _CORE_WORD_MIN_LEN]
    norm_title = normalize(title)
    title_words = set(words(norm_title))

    match_ratio = sum(1 for w in query_words if w in title_words) / len(query_words)
    if core_words:
        core_matched = sum(1 for w in core_words if w in title_words) / len(core_words)
    else:
        core_matched = match_ratio
    phrase_match = 1.0 if norm_query in norm_title else 0.0

    year = _YEAR_RE.search(raw_query)
    year_match = 1.0 if year and year.group(0) in norm_title else 0.0

    fuzz = fuzzy_ratio(raw_query, title)
    seed_factor = min(max(math.log10(max(1, seeders)) / 3, 0.0), 1.0)

    base = 0.55 * match_ratio + 0.25 * core_matched + 0.10 * phrase_match
    base += 0.05 * year_match
    fuzz_boost = max(0.0, fuzz - 0.75) * 0.5

    value = round((base + fuzz_boost) * 80 + seed_factor * 20)
    return max(0, min(100, value))


def is_audio(title: str | None) -> bool:
    return bool(AUDIO_TERMS_RE.search(title or ""))


def is_video(title: str | None) -> bool:
    return bool(VIDEO_TERMS_RE.search(title or ""))


def content_type_penalty(title: str | None) -> int:
    """Points to subtract for video-looking titles in a music search.

    Audio markers win over video markers, so mixed releases
    ("... OST 1080p") keep their score.
    """
    text = title or ""
    if is_audio(text):
        return 0
    if not is_video(text):
        return 0
    if _CAM_TERMS_RE.search(text):
        return CAM_PENALTY
    if _RIP_TERMS_RE.search(text):
        return RIP_PENALTY
    return VIDEO_PENALTY


def penalized_score(query: str | None, title: str | None, seeders: int = 0) -> int:
    """:func:`score` minus :func:`content_type_penalty`, floored at 0."""
    return max(0, score(query, title, seeders) - content_type_penalty(title))
