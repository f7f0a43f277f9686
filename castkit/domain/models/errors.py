"""Error taxonomy shared by every layer.

Transport and auth failures carry enough of the upstream response
(``status``, ``code``, ``details``) for callers to decide on retries; the
client itself never retries.
"""

from typing import Any, Optional


class CastkitError(Exception):
    """Base class for all castkit errors."""


class TransportError(CastkitError):
    """Network failure or non-2xx response from the API."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        code: Optional[str] = None,
        details: Any = None,
    ):
        self.status = status
        self.code = code
        self.details = details
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self)!r}, status={self.status}, code={self.code!r})"


class TransportTimeoutError(TransportError):
    """The request did not complete within the transport timeout."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(message, status=None, code="TIMEOUT", details=details)


class AuthError(CastkitError):
    """Signing or token exchange failed."""

    def __init__(self, message: str, status: Optional[int] = None, details: Any = None):
        self.status = status
        self.details = details
        super().__init__(message)


class NotFoundError(CastkitError):
    """A requested resource is absent from the collection that should hold it."""


class ValidationError(CastkitError, ValueError):
    """Caller supplied malformed input."""
