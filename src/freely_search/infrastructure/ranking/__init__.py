from .dedup import dedupe
from .query_variants import build_query_variants
from .scoring import content_type_penalty, normalize, penalized_score, score

__all__ = [
    "build_query_variants",
    "content_type_penalty",
    "dedupe",
    "normalize",
    "penalized_score",
    "score",
]
