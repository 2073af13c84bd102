"""
Shared error handling for the paginated relay.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class AccessLayerException(Exception):
    """Base exception for relay services."""

    status_code = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self, request_id: Optional[str] = None) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class ValidationError(AccessLayerException):
    """Validation-related errors."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class TransportParseError(AccessLayerException):
    """An upstream URL could not be parsed.

    Only ever logged: the hop continues without a host header.
    """

    def __init__(self, url: str, reason: str):
        super().__init__(
            "TRANSPORT_PARSE_ERROR",
            f"Failed to parse URL from \"{url}\": {reason}",
            {"url": url},
        )


class FetchError(AccessLayerException):
    """Terminal failure of an upstream fetch.

    Fetch errors are surfaced to the caller as plain text, with
    ``status_code`` and ``body`` forming the relay response.
    """

    status_code = 500

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(code, message, details)

    @property
    def body(self) -> str:
        return self.message


class UpstreamError(FetchError):
    """The upstream answered with a non-success status."""

    def __init__(self, status: int, body: str, url: Optional[str] = None):
        super().__init__("UPSTREAM_ERROR", body, {"status": status, "url": url})
        self.status = status

    @property
    def status_code(self) -> int:  # type: ignore[override]
        if 200 <= self.status <= 599:
            return self.status
        return 500


class NetworkError(FetchError):
    """The upstream call did not complete."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(
            "NETWORK_ERROR",
            f"Failed to make request to upstream: {message}",
            {"url": url},
        )


class DecodeError(FetchError):
    """The upstream body was not a JSON array."""

    def __init__(self, reason: str, raw_body: str):
        super().__init__(
            "DECODE_ERROR",
            f"Failed to parse response from upstream: {reason}; body: {raw_body}",
            {"raw_body": raw_body},
        )
        self.raw_body = raw_body


class LinkHeaderParseError(FetchError):
    """A link header was present but malformed."""

    def __init__(self, header: str, reason: str):
        super().__init__(
            "LINK_HEADER_PARSE_ERROR",
            f"Failed to parse link header \"{header}\": {reason}",
            {"header": header},
        )
