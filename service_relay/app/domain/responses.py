"""
Response assembly for relayed fetches.

Every relay response carries ``Access-Control-Allow-Origin: *``. Success
bodies are the bare JSON array; failures are plain-text diagnostics.
"""

from typing import Union

from fastapi import Response
from fastapi.responses import PlainTextResponse

from shared.base_service import CORS_HEADERS
from shared.errors import FetchError
from shared.logging import get_logger

from .models import JsonArrayResult

logger = get_logger("relay.responses")


def assemble_success(result: JsonArrayResult) -> Response:
    """Build the 200 response for an assembled array."""
    try:
        body = result.to_json()
    except (TypeError, ValueError) as exc:
        logger.error("Failed to serialize response", error=str(exc))
        return PlainTextResponse(
            f"Failed to serialize response: {exc}",
            status_code=500,
            headers=CORS_HEADERS,
        )

    return Response(
        content=body,
        status_code=200,
        media_type="application/json",
        headers=CORS_HEADERS,
    )


def assemble_error(error: FetchError) -> Response:
    """Build the failure response for a terminal fetch error."""
    return PlainTextResponse(
        error.body,
        status_code=error.status_code,
        headers=CORS_HEADERS,
    )


def assemble(outcome: Union[JsonArrayResult, FetchError]) -> Response:
    if isinstance(outcome, FetchError):
        return assemble_error(outcome)
    return assemble_success(outcome)
