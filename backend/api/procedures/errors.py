"""
Procedure error taxonomy.

Two families live here:

Request errors (ProcedureError subclasses) map 1:1 to a response:
    ValidationError      400  (field-level detail)
    AuthenticationError  401
    AuthorizationError   403
    NotFoundError        404
    InternalError        500  (generic message only)

Build-time errors are raised while procedures and route trees are assembled
at startup and never reach a caller:
    ProcedureBuildError, DuplicateRouteError, RouteTreeFrozenError

ContextConflict is raised when a stage patch redefines a context field with
an incompatible value. It is a contract bug; the engine reports it as an
InternalError.
"""

from typing import Any, Dict, List, Optional


class ProcedureError(Exception):
    """Base class for errors that are converted into an error response."""

    kind = "InternalError"
    status_code = 500
    default_message = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, fields: Optional[List[Dict[str, str]]] = None):
        self.message = message or self.default_message
        self.fields = list(fields) if fields else None
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the `error` member of the response envelope."""
        error: Dict[str, Any] = {
            "kind": self.kind,
            "message": self.message,
        }
        if self.fields is not None:
            error["fields"] = self.fields
        return error


class ValidationError(ProcedureError):
    kind = "ValidationError"
    status_code = 400
    default_message = "Request validation failed"


class AuthenticationError(ProcedureError):
    kind = "AuthenticationError"
    status_code = 401
    default_message = "Authentication required"


class AuthorizationError(ProcedureError):
    kind = "AuthorizationError"
    status_code = 403
    default_message = "You do not have permission to perform this action"


class NotFoundError(ProcedureError):
    kind = "NotFoundError"
    status_code = 404
    default_message = "The requested resource was not found"


class InternalError(ProcedureError):
    kind = "InternalError"
    status_code = 500
    default_message = "An unexpected error occurred"


class ProcedureBuildError(Exception):
    """Raised when a procedure or endpoint definition is assembled incorrectly."""


class DuplicateRouteError(ProcedureBuildError):
    """Raised when the same (method, full path) is registered twice."""

    def __init__(self, method: str, full_path: str):
        super().__init__(f"Route already registered: {method} {full_path}")
        self.method = method
        self.full_path = full_path


class RouteTreeFrozenError(ProcedureBuildError):
    """Raised when a frozen route tree is modified."""


class ContextConflict(Exception):
    """Raised when a stage patch redefines a context field with an incompatible value."""

    def __init__(self, field: str, existing: Any, incoming: Any):
        super().__init__(
            f"Context field '{field}' already holds {type(existing).__name__}, "
            f"patch supplied {type(incoming).__name__}"
        )
        self.field = field


class ContextFieldMissing(LookupError):
    """Raised when a stage or handler reads a context field no earlier stage provided."""

    def __init__(self, field: str):
        super().__init__(f"Context field '{field}' is not available")
        self.field = field
