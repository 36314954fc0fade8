from .magnet import (
    DEFAULT_TRACKERS,
    MagnetParts,
    build,
    combine,
    derive_from_info_hash,
    extract_info_hash,
    hash_in_url,
    magnet_from_url,
    parse,
)

__all__ = [
    "DEFAULT_TRACKERS",
    "MagnetParts",
    "build",
    "combine",
    "derive_from_info_hash",
    "extract_info_hash",
    "hash_in_url",
    "magnet_from_url",
    "parse",
]
