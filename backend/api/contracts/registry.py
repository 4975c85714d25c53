"""
Contract Registry - single source of truth for API contracts.

The route tree is the registry: every finalized EndpointDefinition carries
its own input/query/output shapes. This module projects the installed
tree into client-facing descriptors:

- EndpointDescriptor: {name, method, full_path, path_params,
                       input_shape, query_shape, output_shape}
- build_manifest(): JSON-ready manifest consumed by the client generator
                    (api/contracts/codegen.py, `cli.py generate-client`)

Shapes are JSON Schemas produced from the same pydantic models the server
validates with; nothing here is maintained by hand.
"""

import hashlib
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from pydantic import TypeAdapter

from api.procedures.engine import SchemaMode
from api.procedures.errors import ProcedureBuildError
from api.procedures.routes import RouteEntry, RouteTree

logger = logging.getLogger('api.contracts')

CONTRACT_VERSION = "v1"

# Process-wide route registry (installed once by create_app after freeze())
ROUTE_TREE: Optional[RouteTree] = None


def install_route_tree(tree: RouteTree) -> RouteTree:
    """
    Install the process-wide route tree.

    Raises:
        ProcedureBuildError: If the tree has not been frozen yet
    """
    global ROUTE_TREE
    if not tree.frozen:
        raise ProcedureBuildError("Route tree must be frozen before it is installed")
    if ROUTE_TREE is not None and ROUTE_TREE is not tree:
        # Allow re-installation (for testing/app factory reuse)
        logger.debug("route_tree_replaced")
    ROUTE_TREE = tree
    return tree


def get_route_tree() -> Optional[RouteTree]:
    return ROUTE_TREE


@dataclass(frozen=True)
class EndpointDescriptor:
    """Client-facing projection of one endpoint definition."""
    name: str
    method: str
    full_path: str
    path_params: Tuple[str, ...]
    input_shape: Optional[Dict[str, Any]]
    query_shape: Optional[Dict[str, Any]]
    output_shape: Dict[str, Any]
    summary: str = ""

    @property
    def query_required(self) -> bool:
        return bool(self.query_shape and self.query_shape.get("required"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "method": self.method,
            "fullPath": self.full_path,
            "pathParams": list(self.path_params),
            "inputShape": self.input_shape,
            "queryShape": self.query_shape,
            "outputShape": self.output_shape,
            "summary": self.summary,
        }


def _json_schema(shape: Any, mode: str) -> Dict[str, Any]:
    return TypeAdapter(shape).json_schema(mode=mode, by_alias=True)


def describe_endpoint(entry: RouteEntry) -> EndpointDescriptor:
    endpoint = entry.endpoint
    return EndpointDescriptor(
        name=endpoint.name,
        method=entry.method,
        full_path=entry.full_path,
        path_params=tuple(entry.path_params),
        input_shape=_json_schema(endpoint.input_shape, "validation") if endpoint.input_shape else None,
        query_shape=_json_schema(endpoint.query_shape, "validation") if endpoint.query_shape else None,
        output_shape=_json_schema(endpoint.output_shape, "serialization"),
        summary=endpoint.summary,
    )


def describe_routes(tree: Optional[RouteTree] = None) -> List[EndpointDescriptor]:
    """
    Project every registered endpoint into a descriptor.

    Raises:
        ProcedureBuildError: If two endpoints share a client method name
    """
    tree = tree if tree is not None else ROUTE_TREE
    if tree is None:
        raise ProcedureBuildError("No route tree installed")

    descriptors = []
    seen: Dict[str, str] = {}
    for entry in tree.iter_endpoints():
        name = entry.endpoint.name
        if name in seen:
            raise ProcedureBuildError(
                f"Endpoint name '{name}' used by both {seen[name]} and {entry.method} {entry.full_path}"
            )
        seen[name] = f"{entry.method} {entry.full_path}"
        descriptors.append(describe_endpoint(entry))
    return descriptors


def build_manifest(tree: Optional[RouteTree] = None, base_path: str = "") -> Dict[str, Any]:
    """JSON-ready manifest of all endpoint contracts (deterministic for hashing)."""
    return {
        "version": CONTRACT_VERSION,
        "basePath": base_path,
        "source": "backend/routes",
        "endpoints": {d.name: d.to_dict() for d in describe_routes(tree)},
    }


def manifest_digest(manifest: Dict[str, Any]) -> str:
    blob = json.dumps(manifest, indent=2, sort_keys=True) + "\n"
    return hashlib.sha256(blob.encode("utf-8")).hexdigest()


__all__ = [
    'CONTRACT_VERSION',
    'SchemaMode',
    'EndpointDescriptor',
    'build_manifest',
    'describe_endpoint',
    'describe_routes',
    'get_route_tree',
    'install_route_tree',
    'manifest_digest',
]
