"""
Cached relay fetches.
"""

from typing import Awaitable, Callable, Optional

from shared.errors import FetchError, ValidationError
from shared.logging import get_logger

from ..domain.models import CacheKey, JsonArrayResult
from .response_cache import ResponseCache


SECONDS_PER_MINUTE = 60

FetchFn = Callable[[], Awaitable[JsonArrayResult]]


def parse_freshness_minutes(raw: str) -> int:
    """Parse the ``{minutes}`` route segment as a positive whole number."""
    if not (raw.isascii() and raw.isdigit()):
        raise ValidationError(
            f"Invalid freshness window \"{raw}\": expected a whole number of minutes",
            {"minutes": raw},
        )

    minutes = int(raw)
    if minutes < 1:
        raise ValidationError(
            f"Invalid freshness window \"{raw}\": must be at least 1 minute",
            {"minutes": raw},
        )
    return minutes


class CacheManager:
    """Serves relay results from the response cache within a freshness window."""

    def __init__(self, cache: ResponseCache):
        self.cache = cache
        self.logger = get_logger("relay.cache_manager")

    @staticmethod
    def cache_key(authorization: Optional[bytes], path: str) -> CacheKey:
        """Cache identity for an effective credential and relayed path."""
        return CacheKey(authorization=authorization, path=path)

    async def cached_fetch(self, key: CacheKey, freshness_minutes: int, fetch_fn: FetchFn) -> JsonArrayResult:
        """Return a cached result for ``key`` or fetch and store a fresh one.

        The window is the caller's, compared against the stored timestamp
        at lookup time. Failed fetches raise and leave the cache untouched.
        Concurrent misses on one key each fetch; the last store wins.
        """
        if freshness_minutes < 1:
            raise ValidationError(
                "Freshness window must be at least 1 minute",
                {"minutes": freshness_minutes},
            )
        window = freshness_minutes * SECONDS_PER_MINUTE

        cached = self.cache.get(key, window)
        if cached is not None:
            self.logger.debug("Cache hit", path=key.path, values=len(cached))
            return cached

        self.logger.debug("Cache miss", path=key.path, window_minutes=freshness_minutes)
        try:
            result = await fetch_fn()
        except FetchError as exc:
            self.logger.info("Fetch failed; cache left unchanged", path=key.path, code=exc.code)
            raise

        self.cache.insert(key, result, window)
        self.logger.debug("Cached relay result", path=key.path, values=len(result))
        return result
