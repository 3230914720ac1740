"""Error response builders for API endpoints."""

from dataclasses import dataclass
from typing import Any

from fastapi.responses import JSONResponse

from modelgate.core.error_types import ErrorType


def _error(status_code: int, error_type: str, message: str, **extra: Any) -> JSONResponse:
    error: dict[str, Any] = {"type": error_type, "message": message}
    error.update({k: v for k, v in extra.items() if v is not None})
    return JSONResponse(status_code=status_code, content={"type": "error", "error": error})


@dataclass(frozen=True, slots=True)
class ErrorResponseBuilder:
    """Centralized builder for consistent error responses across all endpoints.

    Error response format:
    {
        "type": "error",
        "error": {
            "type": "<error_type>",
            "message": "<error_message>"
        }
    }
    """

    @staticmethod
    def model_not_found(model: str) -> JSONResponse:
        """Build a 404 response for a model no enabled provider serves."""
        return _error(404, ErrorType.MODEL_NOT_FOUND.value, f"Model '{model}' not found")

    @staticmethod
    def upstream_error(exception: Exception, context: str | None = None) -> JSONResponse:
        """Build a 502 Bad Gateway response for an exhausted upstream call."""
        message = "Upstream service error"
        if context:
            message += f" while {context}"
        return _error(502, ErrorType.UPSTREAM_HTTP_ERROR.value, message, details=str(exception))

    @staticmethod
    def internal_error(
        message: str, error_type: str = "internal_error", details: Any | None = None
    ) -> JSONResponse:
        """Build a 500 Internal Server Error response."""
        return _error(500, error_type, message, details=details)
