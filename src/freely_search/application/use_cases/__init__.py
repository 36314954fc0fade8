"""Application use cases."""

from .search_all import SearchAllUseCase

__all__ = ["SearchAllUseCase"]
