"""
Adapters package for the Relay Service.

Contains the upstream-facing pieces:

- headers: per-hop outbound header translation
- link_header: RFC 8288 "link" header parsing
- upstream_client: the paginating fetcher built on httpx

Keep adapters thin and side-effect free outside of explicit calls.
"""

from .headers import translate_headers
from .link_header import find_next_link, parse_link_header
from .upstream_client import PaginationFetcher

__all__ = [
    "PaginationFetcher",
    "find_next_link",
    "parse_link_header",
    "translate_headers",
]
