"""
Paginated relay service.

Relays GET requests to the upstream API, follows "next" links until the
last page, and answers with the concatenated JSON array. Requests under
``/cached/{minutes}/`` are served from memory when a result no older
than ``minutes`` exists for the same credential and path.
"""

import time
from typing import Callable, Optional, Tuple

import httpx
from fastapi import Request, Response

from shared.base_service import BaseService
from shared.errors import FetchError
from shared.logging import bind_relay_context

from .adapters.upstream_client import PaginationFetcher
from .caching.cache_manager import CacheManager, parse_freshness_minutes
from .caching.response_cache import ResponseCache
from .domain.models import HeaderList
from .domain.responses import assemble_error, assemble_success

AUTHORIZATION = b"authorization"


class RelayService(BaseService):
    """Relay service implementation."""

    def __init__(
        self,
        *,
        client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.monotonic,
        **config_overrides,
    ):
        super().__init__("relay", 3000, **config_overrides)
        self.fetcher = PaginationFetcher(
            self.config.upstream_base_url,
            client,
            timeout=self.config.upstream_timeout_seconds,
            metrics=self.metrics,
        )
        self.response_cache = ResponseCache(
            self.config.cache_max_entries,
            clock=clock,
            metrics=self.metrics,
        )
        self.cache_manager = CacheManager(self.response_cache)

        default = self.config.default_authorization
        self._default_authorization = default.encode("latin-1") if default is not None else None

        self._setup_relay_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.relay_service = self

    def _setup_relay_routes(self):
        """Set up relay routes; the catch-all must be registered last."""

        @self.app.get("/cached/{minutes}/{path:path}")
        async def cached_relay(minutes: str, path: str, request: Request) -> Response:
            freshness = parse_freshness_minutes(minutes)
            relayed = self._relayed_path(request, cached=True)
            bind_relay_context(relayed_path=relayed, freshness_minutes=freshness)
            headers, authorization = self._effective_headers(request)
            url = self.fetcher.upstream_url(relayed, request.url.query)
            key = self.cache_manager.cache_key(authorization, self._with_query(relayed, request))

            try:
                result = await self.cache_manager.cached_fetch(
                    key,
                    freshness,
                    lambda: self.fetcher.fetch(url, headers),
                )
            except FetchError as exc:
                return self._fetch_failed(exc, url)
            return assemble_success(result)

        @self.app.get("/{path:path}")
        async def relay(path: str, request: Request) -> Response:
            relayed = self._relayed_path(request, cached=False)
            bind_relay_context(relayed_path=relayed)
            headers, _ = self._effective_headers(request)
            url = self.fetcher.upstream_url(relayed, request.url.query)

            try:
                result = await self.fetcher.fetch(url, headers)
            except FetchError as exc:
                return self._fetch_failed(exc, url)
            return assemble_success(result)

    def _relayed_path(self, request: Request, *, cached: bool) -> str:
        """Inbound path as received, minus the leading slash and cache prefix.

        The raw path is used so percent-encoding reaches the upstream untouched.
        """
        raw_path = request.scope.get("raw_path")
        path = raw_path.decode("latin-1") if raw_path else request.url.path
        path = path.split("?", 1)[0].lstrip("/")
        if cached:
            # cached/{minutes}/{path}
            parts = path.split("/", 2)
            path = parts[2] if len(parts) == 3 else ""
        return path

    @staticmethod
    def _with_query(path: str, request: Request) -> str:
        query = request.url.query
        return f"{path}?{query}" if query else path

    def _effective_headers(self, request: Request) -> Tuple[HeaderList, Optional[bytes]]:
        """Inbound headers plus the default credential when none was sent.

        Returns the headers to forward and the effective raw authorization
        value, which is None when there is no credential at all.
        """
        headers: HeaderList = list(request.headers.raw)
        authorization: Optional[bytes] = None

        for name, value in headers:
            if name.lower() == AUTHORIZATION:
                authorization = value
                break

        if authorization is None and self._default_authorization is not None:
            authorization = self._default_authorization
            headers.append((AUTHORIZATION, authorization))

        return headers, authorization

    async def _shutdown(self) -> None:
        await self.fetcher.close()

    def _fetch_failed(self, exc: FetchError, url: str) -> Response:
        self.logger.error(
            "Relay fetch failed",
            url=url,
            code=exc.code,
            status_code=exc.status_code,
        )
        self.metrics.record_error(exc.code)
        return assemble_error(exc)

    async def _check_dependencies(self):
        """Report relay state."""
        return {
            "upstream": self.config.upstream_base_url,
            "cache_entries": str(len(self.response_cache)),
        }


def create_app(**kwargs):
    """Create FastAPI application."""
    service = RelayService(**kwargs)
    return service.app


def main():
    service = RelayService()
    service.run()


if __name__ == "__main__":
    main()
