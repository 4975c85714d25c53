"""
API package - procedure framework and HTTP surface.

This package provides:
- Typed procedure framework (stages, procedures, route tree, engine)
- Contract models and the client contract projection
- Flask dispatcher mounting the route tree
- Global middleware (request_id, request_logging, error_envelope)
"""

from .procedures import ExecutionEngine, Procedure, RouteTree, SchemaMode

__all__ = ['ExecutionEngine', 'Procedure', 'RouteTree', 'SchemaMode']
