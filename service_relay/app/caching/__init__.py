"""
Relay caching package.

Memoizes assembled results per (credential, path) for a window chosen by
each caller. Everything is in memory and lost on restart.
"""

from .cache_manager import CacheManager, parse_freshness_minutes
from .response_cache import ResponseCache

__all__ = [
    "CacheManager",
    "ResponseCache",
    "parse_freshness_minutes",
]
