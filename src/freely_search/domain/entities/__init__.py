from .candidate import Candidate, PluginInfo, SearchRequest

__all__ = [
    "Candidate",
    "PluginInfo",
    "SearchRequest",
]
