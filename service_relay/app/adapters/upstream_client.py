"""
Paginating upstream client for the Relay.
"""

from typing import Iterable, Optional, Tuple, TYPE_CHECKING

import httpx

from shared.logging import bind_relay_context, get_logger
from shared.errors import NetworkError, UpstreamError

from ..domain.models import JsonArrayResult
from .headers import translate_headers
from .link_header import find_next_link

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


class PaginationFetcher:
    """Fetches a JSON array from the upstream, following "next" links.

    Pages of one fetch are requested strictly one after another and
    concatenated first page first. There is no hop limit: an upstream
    whose "next" links never end keeps the fetch running.
    """

    def __init__(
        self,
        upstream_base_url: str,
        client: Optional[httpx.AsyncClient] = None,
        *,
        timeout: float = 30.0,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.base_url = upstream_base_url.rstrip('/')
        self.logger = get_logger("relay.upstream_client")
        self.metrics = metrics
        self._owns_client = client is None
        if client is None:
            client = httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self.client = client
        # Bodies are relayed undecoded, so never ask for compressed ones
        self.client.headers["Accept-Encoding"] = "identity"

    def upstream_url(self, path: str, query: str = "") -> str:
        """Upstream URL for an inbound ``path`` and raw query string."""
        url = f"{self.base_url}/{path.lstrip('/')}"
        if query:
            url = f"{url}?{query}"
        return url

    async def fetch(self, url: str, headers: Iterable[Tuple[bytes, bytes]]) -> JsonArrayResult:
        """Fetch ``url`` and every page linked after it.

        ``headers`` are the raw inbound headers; they are translated again for
        each hop since the host can change between pages.
        """
        headers = list(headers)
        result = JsonArrayResult()
        next_url: Optional[str] = url
        hops = 0

        while next_url is not None:
            hops += 1
            bind_relay_context(hop=hops, upstream_url=next_url)
            response = await self._get(next_url, headers, hop=hops)
            result.extend(JsonArrayResult.from_json(response.text))
            next_url = find_next_link(response.headers, next_url)

            self.logger.debug(
                "Upstream page retrieved",
                url=str(response.url),
                hop=hops,
                total_values=len(result),
                has_next=next_url is not None,
            )

        if self.metrics:
            self.metrics.observe_histogram("upstream_pages_per_fetch", hops)
        return result

    async def _get(self, url: str, headers: list, *, hop: int) -> httpx.Response:
        """Issue one GET for a hop, raising on transport or status failure."""
        try:
            response = await self.client.get(url, headers=translate_headers(headers, url))
        except httpx.HTTPError as exc:
            self.logger.error("Upstream request failed", url=url, hop=hop, error=repr(exc))
            self._count("error")
            raise NetworkError(repr(exc), url=url) from exc

        self._count(str(response.status_code))

        if not response.is_success:
            self.logger.warning(
                "Upstream returned error status",
                url=url,
                hop=hop,
                status_code=response.status_code,
            )
            # Body is read in full by get(); undecodable bytes are replaced
            raise UpstreamError(response.status_code, response.text, url=url)

        return response

    def _count(self, status: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("upstream_requests_total", status=status)

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()
