"""HTTP utilities and normalized transport errors.

Every httpx failure leaving the API layer is mapped to a TransportError
carrying the status, an error code and the raw response body.
"""

import logging
from typing import Any, Optional

import httpx

from castkit.domain.models.errors import TransportError, TransportTimeoutError

logger = logging.getLogger(__name__)


def response_details(response: httpx.Response) -> Any:
    """Returns the parsed JSON body, or the raw text if it is not JSON."""
    try:
        return response.json()
    except ValueError:
        return response.text or None


def error_message(details: Any) -> Optional[str]:
    """Extracts a human-readable message from an API error body.

    Warpcast answers either ``{"message": ...}`` or
    ``{"errors": [{"message": ...}, ...]}``.
    """
    if not isinstance(details, dict):
        return None
    if isinstance(details.get("message"), str):
        return details["message"]
    errors = details.get("errors")
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        message = errors[0].get("message")
        return message if isinstance(message, str) else None
    return None


def error_code(status: Optional[int], details: Any) -> str:
    """Uses the body's ``code`` field when present, else a synthetic code."""
    if isinstance(details, dict) and details.get("code") is not None:
        return str(details["code"])
    if status is None:
        return "NETWORK"
    return f"HTTP_{status}"


def normalize_http_error(error: httpx.HTTPError) -> TransportError:
    """Maps an httpx exception to the TransportError taxonomy."""
    if isinstance(error, httpx.TimeoutException):
        return TransportTimeoutError(f"Request timed out: {error}")
    if isinstance(error, httpx.HTTPStatusError):
        response = error.response
        details = response_details(response)
        message = error_message(details) or f"Request failed with status {response.status_code}."
        return TransportError(
            message,
            status=response.status_code,
            code=error_code(response.status_code, details),
            details=details,
        )
    return TransportError(
        f"Request failed due to network error: {error}",
        code=error_code(None, None),
    )
