"""
Procedure builder and endpoint definitions.

A Procedure is an immutable chain of stages. Each `extend` returns a new
Procedure that points at its parent, so shared prefixes are never copied:

    public = Procedure.base()
    authed = public.extend(AuthenticationStage(...))
    admin = authed.with_roles("admin")
    create_gallery = (
        admin
        .with_body_validation(GalleryPostBody)
        .finalize("POST", "/gallery", handler, output=PostOut)
    )

`guaranteed` is the set of context fields every stage/handler built on top
of the procedure can rely on; `extend` refuses a stage whose `requires`
are not all guaranteed.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, FrozenSet, Optional, Tuple, Type, Union

from pydantic import TypeAdapter

from .access import RoleGuardStage
from .errors import ProcedureBuildError
from .stage import SEEDED_FIELDS, Locals, Stage
from .validation import body_validation_stage, query_validation_stage

HTTP_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE"})

Handler = Callable[[Locals], Union[Any, Awaitable[Any]]]


@dataclass(frozen=True)
class Procedure:
    """Ordered, immutable stage chain (persistent linked list, newest stage last)."""
    parent: Optional["Procedure"] = None
    last: Optional[Stage] = None
    guaranteed: FrozenSet[str] = SEEDED_FIELDS
    depth: int = 0

    @classmethod
    def base(cls) -> "Procedure":
        """Empty procedure: no stages; only the seeded `params` field is guaranteed."""
        return cls()

    @property
    def stages(self) -> Tuple[Stage, ...]:
        chain = []
        node: Optional[Procedure] = self
        while node is not None and node.last is not None:
            chain.append(node.last)
            node = node.parent
        return tuple(reversed(chain))

    def extend(self, stage: Stage) -> "Procedure":
        if not isinstance(stage, Stage):
            raise ProcedureBuildError(f"extend() expects a Stage, got {type(stage).__name__}")
        missing = stage.requires - self.guaranteed
        if missing:
            raise ProcedureBuildError(
                f"Stage '{stage.name}' requires context {sorted(missing)} "
                f"but the procedure only guarantees {sorted(self.guaranteed)}"
            )
        return Procedure(
            parent=self,
            last=stage,
            guaranteed=self.guaranteed | stage.provides,
            depth=self.depth + 1,
        )

    def with_body_validation(self, schema: Type[Any]) -> "Procedure":
        return self.extend(body_validation_stage(schema))

    def with_query_validation(self, schema: Type[Any]) -> "Procedure":
        return self.extend(query_validation_stage(schema))

    def with_roles(self, *roles: str) -> "Procedure":
        return self.extend(RoleGuardStage(roles))

    def contract_for(self, context_field: str) -> Optional[Type[Any]]:
        """Schema published by the most recent validation stage providing `context_field`."""
        node: Optional[Procedure] = self
        while node is not None and node.last is not None:
            contract = node.last.contract
            if contract is not None and contract[0] == context_field:
                return contract[1]
            node = node.parent
        return None

    def finalize(
        self,
        method: str,
        path: str,
        handler: Handler,
        output: Any = None,
        name: Optional[str] = None,
        summary: Optional[str] = None,
    ) -> "EndpointDefinition":
        """
        Bind the procedure to a method, a (local) path and a terminal handler.

        Args:
            method: HTTP method
            path: Path suffix, relative to the route tree node it is mounted on
            handler: Receives the final Locals; returns the result or raises ProcedureError
            output: Declared output shape (pydantic model or typing expression)
            name: Client method name (defaults to the handler's name)
            summary: One-line description (defaults to the handler's docstring)
        """
        method = method.upper()
        if method not in HTTP_METHODS:
            raise ProcedureBuildError(f"Unsupported HTTP method: {method}")
        if not callable(handler):
            raise ProcedureBuildError("Endpoint handler must be callable")
        if output is None:
            raise ProcedureBuildError(f"Endpoint {method} {path} must declare an output shape")

        doc = (handler.__doc__ or "").strip().splitlines()
        return EndpointDefinition(
            method=method,
            path=path,
            procedure=self,
            handler=handler,
            output_shape=output,
            output_adapter=TypeAdapter(output),
            input_shape=self.contract_for("input"),
            query_shape=self.contract_for("query"),
            name=name or handler.__name__,
            summary=summary if summary is not None else (doc[0] if doc else ""),
        )


@dataclass(frozen=True)
class EndpointDefinition:
    """A procedure bound to method + path + handler, with its declared contract."""
    method: str
    path: str
    procedure: Procedure
    handler: Handler
    output_shape: Any
    input_shape: Optional[Type[Any]] = None
    query_shape: Optional[Type[Any]] = None
    name: str = ""
    summary: str = ""
    output_adapter: Any = field(default=None, compare=False, repr=False)

    @property
    def stages(self) -> Tuple[Stage, ...]:
        return self.procedure.stages
