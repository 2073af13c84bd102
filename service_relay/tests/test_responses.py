"""
Unit tests for the relay data model and response assembly.
"""

import json

import pytest

from service_relay.app.domain.models import CacheKey, JsonArrayResult
from service_relay.app.domain.responses import assemble, assemble_error, assemble_success
from shared.errors import DecodeError, LinkHeaderParseError, NetworkError, UpstreamError


class TestJsonArrayResult:
    """Test cases for JsonArrayResult."""

    def test_serializes_as_bare_array(self):
        result = JsonArrayResult([{"id": 1}, "two", 3, None, [True]])

        assert result.to_json() == '[{"id":1},"two",3,null,[true]]'

    def test_round_trip_preserves_values_and_order(self):
        values = [{"nested": {"a": [1, 2.5, "ü"]}}, [], {}, "x", -7, False]

        parsed = JsonArrayResult.from_json(JsonArrayResult(values).to_json())

        assert parsed.values == values

    def test_extend_appends_after_existing(self):
        result = JsonArrayResult([1, 2])
        result.extend(JsonArrayResult([3]))

        assert result.values == [1, 2, 3]
        assert len(result) == 3

    @pytest.mark.parametrize("body", ['{"id": 1}', '"text"', "42", "null", "not json"])
    def test_from_json_requires_array(self, body):
        with pytest.raises(DecodeError) as exc_info:
            JsonArrayResult.from_json(body)

        assert body in exc_info.value.body

    def test_cache_key_identity(self):
        assert CacheKey(b"t", "repos/x") == CacheKey(b"t", "repos/x")
        assert CacheKey(b"t", "repos/x") != CacheKey(b"u", "repos/x")
        assert CacheKey(None, "repos/x") != CacheKey(b"", "repos/x")
        assert len({CacheKey(b"t", "a"), CacheKey(b"t", "a"), CacheKey(b"t", "b")}) == 2


class TestAssembler:
    """Test cases for response assembly."""

    def test_success(self):
        response = assemble_success(JsonArrayResult([{"id": 1}, {"id": 2}, {"id": 3}]))

        assert response.status_code == 200
        assert response.body == b'[{"id":1},{"id":2},{"id":3}]'
        assert response.headers["access-control-allow-origin"] == "*"
        assert response.media_type == "application/json"

    def test_unserializable_value_is_500(self):
        response = assemble_success(JsonArrayResult([object()]))

        assert response.status_code == 500
        assert response.body.startswith(b"Failed to serialize response")
        assert response.headers["access-control-allow-origin"] == "*"

    def test_upstream_error_propagates_status_and_body(self):
        response = assemble_error(UpstreamError(404, '{"message":"Not Found"}'))

        assert response.status_code == 404
        assert response.body == b'{"message":"Not Found"}'
        assert response.headers["access-control-allow-origin"] == "*"
        assert response.headers["content-type"].startswith("text/plain")

    @pytest.mark.parametrize("status", [999, 101, 100, 42])
    def test_out_of_range_upstream_status_falls_back_to_500(self, status):
        response = assemble_error(UpstreamError(status, "weird"))

        assert response.status_code == 500
        assert response.body == b"weird"

    @pytest.mark.parametrize(
        "error",
        [
            DecodeError("Expecting value", "<html>"),
            NetworkError("ConnectError('refused')"),
            LinkHeaderParseError("garbage", "expected '<' at position 0"),
        ],
    )
    def test_internal_failures_are_500_with_diagnostic(self, error):
        response = assemble_error(error)

        assert response.status_code == 500
        assert response.body.decode() == error.message
        assert response.headers["access-control-allow-origin"] == "*"

    def test_assemble_dispatches_on_outcome(self):
        assert assemble(JsonArrayResult([])).status_code == 200
        assert assemble(UpstreamError(403, "forbidden")).status_code == 403

    def test_success_body_parses_back(self):
        values = [{"id": n, "name": f"repo-{n}"} for n in range(5)]

        response = assemble_success(JsonArrayResult(values))

        assert json.loads(response.body) == values
