"""
Route tree - hierarchical, startup-built registry of endpoint definitions.

    tree = RouteTree()
    posts = tree.subroute("/posts")
    posts.config({
        "/": {"GET": list_posts},
        "/gallery": {"POST": create_gallery},
        "/<uuid>": {"GET": get_post, "PATCH": update_post},
    })
    tree.freeze()
    match = tree.lookup("POST", "/posts/gallery")

(method, full path) pairs are unique across the tree; a duplicate raises
DuplicateRouteError instead of replacing the first registration. Once
frozen the tree is compiled into a werkzeug routing Map and is read-only.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from werkzeug.exceptions import HTTPException
from werkzeug.routing import Map, Rule

from .errors import DuplicateRouteError, ProcedureBuildError, RouteTreeFrozenError
from .procedure import EndpointDefinition

logger = logging.getLogger('api.procedures.routes')

_PARAM_RE = re.compile(r"<(?:[^:<>]+:)?([^<>]+)>")


def join_path(prefix: str, suffix: str) -> str:
    """Join path segments into '/a/b' form (no trailing slash, root is '/')."""
    parts = [p for p in prefix.split("/") if p] + [p for p in suffix.split("/") if p]
    return "/" + "/".join(parts)


def path_params(full_path: str) -> List[str]:
    """Path parameter names in declaration order ('/posts/<uuid>' -> ['uuid'])."""
    return _PARAM_RE.findall(full_path)


def _route_key(method: str, full_path: str) -> Tuple[str, str]:
    # '/posts/<uuid>' and '/posts/<int:id>' would shadow each other
    return method, re.sub(r"<[^>]+>", "<>", full_path)


@dataclass(frozen=True)
class RouteEntry:
    method: str
    full_path: str
    endpoint: EndpointDefinition

    @property
    def path_params(self) -> List[str]:
        return path_params(self.full_path)


@dataclass(frozen=True)
class RouteMatch:
    entry: RouteEntry
    path_params: Mapping[str, Any]

    @property
    def endpoint(self) -> EndpointDefinition:
        return self.entry.endpoint


class RouteNode:
    """A namespace in the route tree rooted at `prefix`."""

    def __init__(self, tree: "RouteTree", prefix: str):
        self._tree = tree
        self.prefix = prefix

    def __repr__(self) -> str:
        return f"<RouteNode {self.prefix}>"

    def subroute(self, path: str) -> "RouteNode":
        """Nested namespace under this node; the same path yields the same node."""
        return self._tree._node_for(join_path(self.prefix, path))

    def config(self, bindings: Mapping[str, Mapping[str, EndpointDefinition]]) -> "RouteNode":
        """
        Bind method handlers at this node.

        Args:
            bindings: {path suffix: {HTTP method: EndpointDefinition}}
        """
        for suffix, methods in bindings.items():
            for method, endpoint in methods.items():
                method = method.upper()
                if endpoint.method != method:
                    raise ProcedureBuildError(
                        f"Endpoint '{endpoint.name}' was finalized for {endpoint.method}, bound as {method}"
                    )
                if join_path("", endpoint.path) != join_path("", suffix):
                    raise ProcedureBuildError(
                        f"Endpoint '{endpoint.name}' was finalized for path {endpoint.path!r}, bound at {suffix!r}"
                    )
                self._tree._register(method, join_path(self.prefix, suffix), endpoint)
        return self

    def mount(self, *endpoints: EndpointDefinition) -> "RouteNode":
        """Shorthand for config() using each endpoint's own method and path."""
        for endpoint in endpoints:
            self.config({endpoint.path: {endpoint.method: endpoint}})
        return self


class RouteTree(RouteNode):
    """Root of the route tree; owns registration, freezing and lookup."""

    def __init__(self):
        super().__init__(self, "/")
        self._nodes: Dict[str, RouteNode] = {"/": self}
        self._entries: List[RouteEntry] = []
        self._keys: Dict[Tuple[str, str], RouteEntry] = {}
        self._map: Optional[Map] = None

    @property
    def frozen(self) -> bool:
        return self._map is not None

    def _node_for(self, prefix: str) -> RouteNode:
        if prefix not in self._nodes:
            if self.frozen:
                raise RouteTreeFrozenError(f"Cannot add namespace {prefix} to a frozen route tree")
            self._nodes[prefix] = RouteNode(self, prefix)
        return self._nodes[prefix]

    def _register(self, method: str, full_path: str, endpoint: EndpointDefinition) -> None:
        if self.frozen:
            raise RouteTreeFrozenError(f"Cannot register {method} {full_path} on a frozen route tree")
        key = _route_key(method, full_path)
        if key in self._keys:
            raise DuplicateRouteError(method, full_path)
        entry = RouteEntry(method=method, full_path=full_path, endpoint=endpoint)
        self._keys[key] = entry
        self._entries.append(entry)
        logger.debug(f"route_registered method={method} path={full_path} name={endpoint.name}")

    def freeze(self) -> "RouteTree":
        """Compile the registry for dispatch. Idempotent."""
        if self.frozen:
            return self
        rules = [
            Rule(entry.full_path, methods=[entry.method], endpoint=index)
            for index, entry in enumerate(self._entries)
        ]
        url_map = Map(rules, strict_slashes=False)
        url_map.update()
        self._map = url_map
        logger.info(f"route_tree_frozen routes={len(self._entries)}")
        return self

    def lookup(self, method: str, path: str) -> Optional[RouteMatch]:
        """Resolve (method, path) to exactly one endpoint, or None for NotFound."""
        if self._map is None:
            raise RuntimeError("RouteTree.lookup() called before freeze()")
        path = "/" + path.strip("/")
        adapter = self._map.bind("cms.local")
        try:
            index, args = adapter.match(path_info=path, method=method.upper())
        except HTTPException:
            return None
        return RouteMatch(entry=self._entries[index], path_params=args)

    def iter_endpoints(self) -> Iterator[RouteEntry]:
        """Registered routes in registration order."""
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)
