"""Remote tile retrieval: the fetch engine and its delegates."""

from .delegate import DelegateResponse, FetchPrimitive, RequestsFetcher
from .engine import DelegateResult, FetchResult, TileFetcher

__all__ = [
    "DelegateResponse",
    "DelegateResult",
    "FetchPrimitive",
    "FetchResult",
    "RequestsFetcher",
    "TileFetcher",
]
