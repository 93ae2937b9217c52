"""
Exceptions and JSON error envelopes for the HTTP API.

Narrative rule breaches never reach this module: the engine reports them
as validation results, warnings and violations. Only malformed requests,
unknown resources and rate limiting surface as HTTP errors.

Every error body has the shape::

    {"error": "<message>", "error_code": "<CODE>", "details": {...}}
"""

import logging
import traceback
from typing import Any, Dict, Optional, Tuple

from flask import Response, jsonify, request
from pydantic import ValidationError as PydanticValidationError

logger = logging.getLogger(__name__)


class APIError(Exception):
    """
    Base exception for errors returned to API callers.

    Args:
        message: Human-readable error message
        error_code: Machine-readable error code
        status_code: HTTP status code
        details: Extra context for the caller
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}


class ValidationError(APIError):
    """Raised when a request body is missing, not an object, or fails its schema."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "VALIDATION_ERROR", 400, details)

    @classmethod
    def from_pydantic(cls, error: PydanticValidationError, what: str = "request") -> "ValidationError":
        """
        Convert a pydantic error, keyed by dotted field path.

        A chapter beat without a location shows up as
        ``{"fields": {"chapters.0.beats.2.location": "Field required"}}``.
        """
        fields = {
            ".".join(str(part) for part in item["loc"]) or what: item["msg"]
            for item in error.errors()
        }
        return cls(f"Invalid {what}.", details={"fields": fields})


class NotFoundError(APIError):
    """Raised for unknown genre trackers and unknown routes."""

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} '{resource_id}' not found.",
            "NOT_FOUND",
            404,
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class RateLimitError(APIError):
    """Raised when a caller exceeds a Flask-Limiter limit."""

    def __init__(self, limit: Optional[str] = None):
        details = {"limit": limit} if limit else {}
        super().__init__(
            "Rate limit exceeded. Please try again later.",
            "RATE_LIMIT_EXCEEDED",
            429,
            details,
        )


def _log_error(error: Exception) -> None:
    # 4xx errors are logged without a traceback
    if isinstance(error, APIError) and error.status_code < 500:
        logger.info(f"{error.error_code} on {request.method} {request.path}: {error.message}")
        return
    logger.error(
        f"Unhandled {type(error).__name__} on {request.method} {request.path}: {error}",
        exc_info=True,
    )


def create_error_response(error: Exception, include_traceback: bool = False) -> Tuple[Response, int]:
    """
    Build the JSON error envelope for an exception.

    Args:
        error: The exception being handled
        include_traceback: Add a traceback to the body (development only)

    Returns:
        Tuple of (json_response, status_code)
    """
    _log_error(error)

    if isinstance(error, APIError):
        body: Dict[str, Any] = {"error": error.message, "error_code": error.error_code}
        if error.details:
            body["details"] = error.details
        status = error.status_code
    else:
        body = {
            "error": str(error) if include_traceback else "An unexpected error occurred.",
            "error_code": "INTERNAL_ERROR",
            "error_type": type(error).__name__,
        }
        status = 500

    if include_traceback:
        body["traceback"] = traceback.format_exc()
    return jsonify(body), status


def register_error_handlers(app, debug: bool = False) -> None:
    """
    Register the JSON error handlers on a Flask app.

    Args:
        app: Flask application instance
        debug: Include tracebacks in error bodies
    """
    @app.errorhandler(APIError)
    def handle_api_error(error: APIError):
        return create_error_response(error, include_traceback=debug)

    @app.errorhandler(PydanticValidationError)
    def handle_payload_error(error: PydanticValidationError):
        return create_error_response(ValidationError.from_pydantic(error), include_traceback=debug)

    @app.errorhandler(404)
    def handle_not_found(error):
        return create_error_response(NotFoundError("Resource", request.path), include_traceback=debug)

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        return jsonify({
            "error": f"Method '{request.method}' not allowed for this endpoint.",
            "error_code": "METHOD_NOT_ALLOWED",
        }), 405

    @app.errorhandler(429)
    def handle_rate_limit(error):
        # Flask-Limiter puts the exceeded limit (e.g. "30 per 1 minute") in the description
        return create_error_response(RateLimitError(getattr(error, "description", None)), include_traceback=debug)

    @app.errorhandler(Exception)
    def handle_generic_exception(error: Exception):
        return create_error_response(error, include_traceback=debug)
