"""
Unit tests for the paginating upstream client.
"""

import json

import httpx
import pytest

from service_relay.app.adapters.upstream_client import PaginationFetcher
from shared.errors import DecodeError, LinkHeaderParseError, NetworkError, UpstreamError
from shared.metrics import MetricsCollector


class FakeUpstream:
    """Serves canned pages by URL and records every request."""

    def __init__(self, pages):
        self.pages = pages
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body, headers = self.pages[str(request.url)]
        content = body if isinstance(body, (str, bytes)) else json.dumps(body)
        return httpx.Response(status, content=content, headers=headers)


def make_fetcher(upstream, **kwargs) -> PaginationFetcher:
    client = httpx.AsyncClient(transport=httpx.MockTransport(upstream))
    return PaginationFetcher("https://api.github.com", client, **kwargs)


class TestPaginationFetcher:
    """Test cases for PaginationFetcher."""

    @pytest.mark.asyncio
    async def test_single_page(self):
        """Without a link header the result is exactly the page."""
        upstream = FakeUpstream({
            "https://api.github.com/repos/x": (200, [{"id": 1}, {"id": 2}], {}),
        })
        fetcher = make_fetcher(upstream)

        result = await fetcher.fetch("https://api.github.com/repos/x", [])

        assert result.values == [{"id": 1}, {"id": 2}]
        assert len(upstream.requests) == 1

    @pytest.mark.asyncio
    async def test_follows_next_links_in_order(self):
        """Pages are concatenated first page first."""
        upstream = FakeUpstream({
            "https://api/x": (200, [{"id": 1}, {"id": 2}], {"link": '<https://api/x?page=2>; rel="next"'}),
            "https://api/x?page=2": (200, [{"id": 3}], {}),
        })
        fetcher = make_fetcher(upstream)

        result = await fetcher.fetch("https://api/x", [])

        assert result.to_json() == '[{"id":1},{"id":2},{"id":3}]'
        assert [str(r.url) for r in upstream.requests] == ["https://api/x", "https://api/x?page=2"]

    @pytest.mark.asyncio
    async def test_many_pages_without_recursion_limit(self):
        """Long chains are walked iteratively."""
        total = 1500
        pages = {}
        for page in range(1, total + 1):
            headers = {}
            if page < total:
                headers["link"] = f'<https://api/x?page={page + 1}>; rel="next"'
            pages[f"https://api/x?page={page}"] = (200, [page], headers)
        fetcher = make_fetcher(FakeUpstream(pages))

        result = await fetcher.fetch("https://api/x?page=1", [])

        assert result.values == list(range(1, total + 1))

    @pytest.mark.asyncio
    async def test_headers_retranslated_per_hop(self):
        """Host follows each hop while other headers stay constant."""
        upstream = FakeUpstream({
            "https://api.github.com/x": (200, [1], {"link": '<https://cdn.example.com/x?page=2>; rel="next"'}),
            "https://cdn.example.com/x?page=2": (200, [2], {}),
        })
        fetcher = make_fetcher(upstream)
        inbound = [(b"host", b"relay.local"), (b"authorization", b"token abc"), (b"accept-encoding", b"gzip")]

        await fetcher.fetch("https://api.github.com/x", inbound)

        first, second = upstream.requests
        assert first.headers["host"] == "api.github.com"
        assert second.headers["host"] == "cdn.example.com"
        assert first.headers["authorization"] == second.headers["authorization"] == "token abc"
        assert first.headers["accept-encoding"] == "identity"
        assert second.headers["accept-encoding"] == "identity"

    @pytest.mark.asyncio
    async def test_non_ascii_header_bytes_reach_every_hop(self):
        upstream = FakeUpstream({
            "https://api/x": (200, [1], {"link": '<https://api/x?page=2>; rel="next"'}),
            "https://api/x?page=2": (200, [2], {}),
        })
        fetcher = make_fetcher(upstream)
        inbound = [(b"x-name", "café".encode()), (b"authorization", b"token \xff")]

        result = await fetcher.fetch("https://api/x", inbound)

        assert result.values == [1, 2]
        for sent in upstream.requests:
            raw = [(name.lower(), value) for name, value in sent.headers.raw]
            assert (b"x-name", "café".encode()) in raw
            assert (b"authorization", b"token \xff") in raw

    @pytest.mark.asyncio
    async def test_upstream_error_status(self):
        """Non-success statuses fail with the verbatim body."""
        upstream = FakeUpstream({
            "https://api/x": (404, '{"message":"Not Found"}', {}),
        })
        fetcher = make_fetcher(upstream)

        with pytest.raises(UpstreamError) as exc_info:
            await fetcher.fetch("https://api/x", [])

        assert exc_info.value.status_code == 404
        assert exc_info.value.body == '{"message":"Not Found"}'

    @pytest.mark.asyncio
    async def test_error_response_links_not_followed(self):
        upstream = FakeUpstream({
            "https://api/x": (500, "boom", {"link": '<https://api/x?page=2>; rel="next"'}),
        })
        fetcher = make_fetcher(upstream)

        with pytest.raises(UpstreamError):
            await fetcher.fetch("https://api/x", [])

        assert len(upstream.requests) == 1

    @pytest.mark.asyncio
    async def test_error_on_later_page_fails_whole_fetch(self):
        """No partial results when a follow-up page fails."""
        upstream = FakeUpstream({
            "https://api/x": (200, [1], {"link": '<https://api/x?page=2>; rel="next"'}),
            "https://api/x?page=2": (502, "bad gateway", {}),
        })
        fetcher = make_fetcher(upstream)

        with pytest.raises(UpstreamError) as exc_info:
            await fetcher.fetch("https://api/x", [])

        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_non_array_body_is_decode_error(self):
        upstream = FakeUpstream({
            "https://api/x": (200, {"id": 1}, {}),
        })
        fetcher = make_fetcher(upstream)

        with pytest.raises(DecodeError) as exc_info:
            await fetcher.fetch("https://api/x", [])

        assert exc_info.value.status_code == 500
        assert '{"id": 1}' in exc_info.value.body

    @pytest.mark.asyncio
    async def test_invalid_json_is_decode_error(self):
        upstream = FakeUpstream({
            "https://api/x": (200, "<html>oops</html>", {}),
        })
        fetcher = make_fetcher(upstream)

        with pytest.raises(DecodeError) as exc_info:
            await fetcher.fetch("https://api/x", [])

        assert exc_info.value.raw_body == "<html>oops</html>"

    @pytest.mark.asyncio
    async def test_malformed_link_header_aborts(self):
        upstream = FakeUpstream({
            "https://api/x": (200, [1], {"link": "https://api/x?page=2; rel=next"}),
        })
        fetcher = make_fetcher(upstream)

        with pytest.raises(LinkHeaderParseError):
            await fetcher.fetch("https://api/x", [])

    @pytest.mark.asyncio
    async def test_network_failure(self):
        """Transport errors surface as NetworkError."""
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        fetcher = make_fetcher(handler)

        with pytest.raises(NetworkError) as exc_info:
            await fetcher.fetch("https://api/x", [])

        assert exc_info.value.status_code == 500
        assert "connection refused" in exc_info.value.body

    @pytest.mark.asyncio
    async def test_metrics_recorded(self):
        upstream = FakeUpstream({
            "https://api/x": (200, [1], {"link": '<https://api/x?page=2>; rel="next"'}),
            "https://api/x?page=2": (200, [2], {}),
        })
        metrics = MetricsCollector("relay")
        fetcher = make_fetcher(upstream, metrics=metrics)

        await fetcher.fetch("https://api/x", [])

        assert metrics.registry.get_sample_value("upstream_requests_total", {"status": "200"}) == 2
        assert metrics.registry.get_sample_value("upstream_pages_per_fetch_sum") == 2

    def test_upstream_url(self):
        fetcher = PaginationFetcher("https://api.github.com/", httpx.AsyncClient())

        assert fetcher.upstream_url("repos/x") == "https://api.github.com/repos/x"
        assert fetcher.upstream_url("repos/x", "per_page=100") == "https://api.github.com/repos/x?per_page=100"
