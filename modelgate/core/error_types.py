"""Error type enumeration for upstream failures.

Used to classify failed upstream attempts in logs and error responses.
"""

from enum import Enum


class ErrorType(str, Enum):
    """Error type categories for upstream attempts and error responses."""

    # HTTP/API errors
    UPSTREAM_HTTP_ERROR = "upstream_http_error"  # Upstream returned a 5xx
    UPSTREAM_TIMEOUT = "upstream_timeout"  # Upstream provider timeout
    UPSTREAM_CONNECTION_ERROR = "upstream_connection_error"  # Transport failure

    # Authentication/rate limiting
    AUTH_ERROR = "auth_error"  # Authentication/authorization failure
    RATE_LIMIT = "rate_limit"  # Rate limit exceeded
    BAD_REQUEST = "bad_request"  # Invalid request

    # Routing
    MODEL_NOT_FOUND = "model_not_found"  # No route for the requested model

    # Catch-all
    UNEXPECTED_ERROR = "unexpected_error"  # Unhandled/unexpected error

    @classmethod
    def from_status(cls, status_code: int) -> "ErrorType":
        """Map an upstream HTTP status code to an error category."""
        if status_code in (401, 403):
            return cls.AUTH_ERROR
        if status_code == 429:
            return cls.RATE_LIMIT
        if status_code in (408, 504):
            return cls.UPSTREAM_TIMEOUT
        if status_code >= 500:
            return cls.UPSTREAM_HTTP_ERROR
        if status_code >= 400:
            return cls.BAD_REQUEST
        return cls.UNEXPECTED_ERROR
