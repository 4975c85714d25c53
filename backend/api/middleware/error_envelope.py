"""
Error envelope middleware - Standardize error responses produced outside
the execution engine (werkzeug HTTP errors, failures in other middleware).

Same envelope as procedure errors:
{
    "ok": false,
    "error": {"kind": "NotFoundError", "message": "..."},
    "meta": {"requestId": "uuid"}
}
"""

import logging

from flask import Flask, g, jsonify
from werkzeug.exceptions import HTTPException

from api.procedures.errors import InternalError
from api.serializers.response import error_envelope

logger = logging.getLogger('api.middleware.error')

# HTTP status -> error kind for werkzeug exceptions
STATUS_KINDS = {
    400: "ValidationError",
    401: "AuthenticationError",
    403: "AuthorizationError",
    404: "NotFoundError",
    405: "NotFoundError",
}


def kind_for_status(status_code: int) -> str:
    if status_code >= 500:
        return "InternalError"
    return STATUS_KINDS.get(status_code, "ValidationError")


def setup_error_handlers(app: Flask) -> None:
    """
    Set up standardized error handlers on Flask app.

    Handles:
    - HTTP exceptions (400, 404, 405, ...)
    - Unhandled Python exceptions (generic InternalError, full detail logged)

    Args:
        app: Flask application instance
    """

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        """Handle Flask/Werkzeug HTTP exceptions."""
        status_code = error.code or 500
        kind = kind_for_status(status_code)
        message = InternalError.default_message if status_code >= 500 else error.description
        return jsonify(error_envelope(kind, message)), status_code

    @app.errorhandler(Exception)
    def handle_generic_error(error):
        """Handle unhandled Python exceptions."""
        request_id = getattr(g, 'request_id', None)

        # Log the full exception
        logger.exception(
            f"Unhandled error: {error}",
            extra={
                "event": "unhandled_error",
                "request_id": request_id,
                "error_type": type(error).__name__,
            }
        )

        return jsonify(error_envelope("InternalError", InternalError.default_message)), 500
