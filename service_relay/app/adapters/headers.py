"""
Outbound header translation for upstream hops.

Headers travel as the raw bytes the client sent; values are never
decoded, so obs-text and non-UTF-8 credentials reach the upstream as-is.
"""

from typing import Iterable, Optional, Tuple

import httpx

from shared.errors import TransportParseError
from shared.logging import get_logger

from ..domain.models import HeaderList

logger = get_logger("relay.headers")

HOST = b"host"

# Responses are relayed as-is and never decompressed
DROPPED_HEADERS = frozenset({b"accept-encoding"})


def upstream_host(url: str) -> bytes:
    """Hostname of ``url`` in wire form; raises TransportParseError when there is none."""
    try:
        host = httpx.URL(url).raw_host
    except httpx.InvalidURL as exc:
        raise TransportParseError(url, str(exc)) from exc

    if not host:
        raise TransportParseError(url, "URL has no host")
    return host


def translate_headers(headers: Iterable[Tuple[bytes, bytes]], url: str) -> HeaderList:
    """Produce the outbound headers for one hop to ``url``.

    The inbound host header is replaced by the hop's hostname,
    accept-encoding is dropped, and everything else passes through in
    order, repeated names included.
    """
    translated: HeaderList = []
    host: Optional[bytes] = None
    host_resolved = False

    for name, value in headers:
        lowered = name.lower()
        if lowered in DROPPED_HEADERS:
            continue

        if lowered == HOST:
            if not host_resolved:
                host_resolved = True
                try:
                    host = upstream_host(url)
                except TransportParseError as exc:
                    logger.warning("Skipping host header", url=url, error=exc.message)
            if host is not None:
                translated.append((name, host))
            continue

        translated.append((name, value))

    return translated
