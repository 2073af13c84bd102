"""
Domain types for the Relay Service.

Holds the data model shared by the fetcher and cache, and the response
assembler that turns fetch outcomes into wire responses.
"""

from .models import CacheEntry, CacheKey, HeaderList, JsonArrayResult
from .responses import assemble, assemble_error, assemble_success

__all__ = [
    "CacheEntry",
    "CacheKey",
    "HeaderList",
    "JsonArrayResult",
    "assemble",
    "assemble_error",
    "assemble_success",
]
