"""
Contract package.

Provides the pydantic contract models, the process-wide route registry
and its client-facing projection (descriptors, manifest, typed client).
"""

from .registry import (
    CONTRACT_VERSION,
    EndpointDescriptor,
    SchemaMode,
    build_manifest,
    describe_endpoint,
    describe_routes,
    get_route_tree,
    install_route_tree,
    manifest_digest,
)
from .codegen import render_client_module

__all__ = [
    'CONTRACT_VERSION',
    'EndpointDescriptor',
    'SchemaMode',
    'build_manifest',
    'describe_endpoint',
    'describe_routes',
    'get_route_tree',
    'install_route_tree',
    'manifest_digest',
    'render_client_module',
]
