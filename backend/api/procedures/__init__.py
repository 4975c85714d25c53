"""
Typed procedure framework.

Endpoints are built as immutable chains of stages (validation, auth, role
guards, ...) finalized with a handler, registered once in a RouteTree and
executed per request by the ExecutionEngine.
"""

from .access import AuthenticationStage, Principal, RoleGuardStage
from .engine import ExecutionEngine, SchemaMode, get_default_mode
from .errors import (
    AuthenticationError,
    AuthorizationError,
    ContextConflict,
    ContextFieldMissing,
    DuplicateRouteError,
    InternalError,
    NotFoundError,
    ProcedureBuildError,
    ProcedureError,
    RouteTreeFrozenError,
    ValidationError,
)
from .http import IncomingRequest, ProcedureResponse, ResponseDraft
from .procedure import EndpointDefinition, Procedure
from .routes import RouteEntry, RouteMatch, RouteNode, RouteTree
from .stage import Continue, Halt, Locals, Stage, StageResult, stage

__all__ = [
    'AuthenticationStage',
    'Principal',
    'RoleGuardStage',
    'ExecutionEngine',
    'SchemaMode',
    'get_default_mode',
    'AuthenticationError',
    'AuthorizationError',
    'ContextConflict',
    'ContextFieldMissing',
    'DuplicateRouteError',
    'InternalError',
    'NotFoundError',
    'ProcedureBuildError',
    'ProcedureError',
    'RouteTreeFrozenError',
    'ValidationError',
    'IncomingRequest',
    'ProcedureResponse',
    'ResponseDraft',
    'EndpointDefinition',
    'Procedure',
    'RouteEntry',
    'RouteMatch',
    'RouteNode',
    'RouteTree',
    'Continue',
    'Halt',
    'Locals',
    'Stage',
    'StageResult',
    'stage',
]
