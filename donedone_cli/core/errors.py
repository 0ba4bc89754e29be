"""
Error model for the DoneDone client.

Every failure of an API call surfaces as an ``APIError`` subclass:

- ``TransportError``: no response was obtained (DNS, refused connection, timeout)
- ``ProtocolError``: the server answered with an error status
- ``LocalError``: the request could not be produced (e.g. unreadable attachment)
"""

from typing import Any

from donedone_cli.core.types import RawResponse

GENERIC_API_ERROR = "An API error occurred."


class CLIError(Exception):
    """Base error class for CLI errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result: dict[str, Any] = {"error": self.message}
        if self.details:
            result["details"] = self.details
        return result


class APIError(CLIError):
    """API error, optionally carrying the raw response that caused it."""

    def __init__(
        self,
        message: str,
        response: RawResponse | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.response = response

    @property
    def status(self) -> int:
        """HTTP status code, or 0 when no response was received."""
        return self.response.status_code if self.response else 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result = super().to_dict()
        result["type"] = type(self).__name__
        if self.status:
            result["status"] = self.status
        return result


class TransportError(APIError):
    """No response could be obtained from the server."""

    def __init__(self, message: str = GENERIC_API_ERROR, details: dict | None = None):
        super().__init__(message, response=None, details=details)


class ProtocolError(APIError):
    """The server responded with a non-success status."""

    def __init__(self, response: RawResponse, details: dict | None = None):
        super().__init__(response.body_text or GENERIC_API_ERROR, response=response, details=details)

    @property
    def body_text(self) -> str:
        return self.response.body_text if self.response else ""


class LocalError(APIError):
    """The request failed locally before or while its body was produced."""


class ValidationError(CLIError):
    """Validation error for local input/data issues (not API errors)."""
