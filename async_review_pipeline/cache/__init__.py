"""
Content-addressed caching of analysis results.
"""

from .analysis import (
    AnalysisCache,
    CacheEntry,
    CacheKey,
    CacheStats,
    build_cache_key,
    fingerprint,
)

__all__ = [
    "AnalysisCache",
    "CacheEntry",
    "CacheKey",
    "CacheStats",
    "build_cache_key",
    "fingerprint",
]
