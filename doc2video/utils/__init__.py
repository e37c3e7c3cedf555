"""Módulo de utilidades"""

from .cache import AssetStore
from .backoff import with_retry, RateLimiter, global_rate_limiter
from .similarity import cosine_similarity, top_k

__all__ = [
    "AssetStore",
    "with_retry",
    "RateLimiter",
    "global_rate_limiter",
    "cosine_similarity",
    "top_k",
]
