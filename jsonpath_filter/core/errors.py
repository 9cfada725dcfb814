"""Exception hierarchy for the JSONPath filter service."""

from typing import Any


class JSONPathFilterError(Exception):
    """Base exception for all service errors.

    Carries the HTTP status code and error type used when the error is
    rendered as a JSON error response.
    """

    status_code: int = 500
    error_type: str = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        error_type: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if error_type is not None:
            self.error_type = error_type
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Render the error in the service's JSON error envelope."""
        return {"error": {"type": self.error_type, "message": self.message}}


class ConfigurationError(JSONPathFilterError):
    """Raised when configuration loading or validation fails."""

    error_type = "configuration_error"


class CaptureError(JSONPathFilterError):
    """Raised when an origin handler violates the response write protocol."""

    error_type = "capture_error"


class QueryEvaluationError(JSONPathFilterError):
    """Raised when a JSONPath query is malformed or matches nothing."""

    status_code = 400
    error_type = "query_failure"

    def __init__(self, message: str, *, query: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.query = query


class UpstreamError(JSONPathFilterError):
    """Base class for failures talking to the upstream service."""

    status_code = 502
    error_type = "upstream_error"


class UpstreamConnectionError(UpstreamError):
    """Raised when the upstream service cannot be reached."""

    error_type = "upstream_connection_error"


class UpstreamTimeoutError(UpstreamError):
    """Raised when the upstream service does not answer in time."""

    status_code = 504
    error_type = "upstream_timeout_error"
