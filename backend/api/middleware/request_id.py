"""
Request ID middleware - Inject X-Request-ID for request correlation.

Provides:
- Request ID injection on every request (g.request_id)
- Response header addition
- Correlation ID for logging; the dispatcher forwards it to the engine so
  stage/handler logs carry the same id
"""

import re
import uuid

from flask import Flask, g, request

# Accept caller-supplied ids only if they are short and header-safe
_VALID_REQUEST_ID = re.compile(r'^[A-Za-z0-9._:-]{1,128}$')


def _incoming_request_id() -> str:
    candidate = request.headers.get('X-Request-ID', '')
    if candidate and _VALID_REQUEST_ID.match(candidate):
        return candidate
    return str(uuid.uuid4())


def setup_request_id_middleware(app: Flask) -> None:
    """
    Set up request ID middleware on Flask app.

    Injects X-Request-ID into:
    - Flask's g object (g.request_id)
    - Response headers (X-Request-ID)

    Args:
        app: Flask application instance
    """

    @app.before_request
    def inject_request_id():
        """Inject request ID before each request."""
        g.request_id = _incoming_request_id()

    @app.after_request
    def add_request_id_header(response):
        """Add request ID to response headers."""
        if hasattr(g, 'request_id'):
            response.headers['X-Request-ID'] = g.request_id
        return response


def get_request_id() -> str:
    """
    Get current request ID from Flask context.

    Returns:
        Request ID string, or generated UUID if not in request context
    """
    if hasattr(g, 'request_id'):
        return g.request_id
    return str(uuid.uuid4())
