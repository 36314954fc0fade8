from .fetch_client import FetchClient, TooManyRedirectsError, cookie_pairs, origin_of

__all__ = [
    "FetchClient",
    "TooManyRedirectsError",
    "cookie_pairs",
    "origin_of",
]
