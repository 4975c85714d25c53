"""
Stages - the atomic unit of request processing.

A stage is called with (request, response, context) and returns one of:
    Continue(patch)  -> merge patch into the context, run the next stage
    Halt(response)   -> emit response now, nothing else in the chain runs

Ordinary control flow (validation failure, missing credentials) always goes
through Halt; exceptions are reserved for unexpected failures.

Every stage declares which context fields it may introduce (`provides`) and
which it reads (`requires`). Procedure.extend checks `requires` against the
fields guaranteed by the stages before it, so an ordering mistake fails at
startup instead of at request time.
"""

import inspect
from dataclasses import dataclass, field
from typing import (
    Any, Awaitable, Callable, Dict, FrozenSet, Iterable, Iterator, Mapping,
    Optional, Tuple, Union,
)

from .errors import ContextConflict, ContextFieldMissing, ProcedureError
from .http import IncomingRequest, ProcedureResponse, ResponseDraft

# Fields every context starts with; `params` holds the matched path parameters
SEEDED_FIELDS: FrozenSet[str] = frozenset({"params"})


@dataclass(frozen=True)
class Continue:
    """Stage outcome: keep going, adding `patch` to the context."""
    patch: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Halt:
    """Stage outcome: stop the chain and emit `response`."""
    response: ProcedureResponse

    @classmethod
    def with_error(cls, error: ProcedureError) -> "Halt":
        return cls(ProcedureResponse.from_error(error))


StageResult = Union[Continue, Halt]


class Locals(Mapping[str, Any]):
    """
    Request-scoped context accumulated by stages.

    Append-only: `merged` returns a new Locals and refuses to redefine an
    existing field with a value of a different type.
    """

    __slots__ = ("_fields",)

    def __init__(self, fields: Optional[Mapping[str, Any]] = None):
        self._fields: Dict[str, Any] = dict(fields or {})

    def __getitem__(self, name: str) -> Any:
        return self._fields[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __getattr__(self, name: str) -> Any:
        try:
            return self._fields[name]
        except KeyError:
            raise AttributeError(name) from None

    def __repr__(self) -> str:
        return f"Locals({sorted(self._fields)})"

    def require(self, name: str) -> Any:
        """Read a field that must have been provided by an earlier stage."""
        if name not in self._fields:
            raise ContextFieldMissing(name)
        return self._fields[name]

    def merged(self, patch: Mapping[str, Any]) -> "Locals":
        fields = dict(self._fields)
        for name, value in patch.items():
            if name in fields:
                existing = fields[name]
                if existing is not None and value is not None and not isinstance(value, type(existing)):
                    raise ContextConflict(name, existing, value)
            fields[name] = value
        return Locals(fields)


StageFn = Callable[
    [IncomingRequest, ResponseDraft, Locals],
    Union[StageResult, Awaitable[StageResult]],
]


@dataclass(frozen=True)
class Stage:
    """
    A named, immutable request-processing step.

    `contract` is set by the validation adapter to (context field, schema)
    so endpoint definitions can publish their input/query shapes without
    restating them.
    """
    name: str
    run: StageFn
    provides: FrozenSet[str] = frozenset()
    requires: FrozenSet[str] = frozenset()
    contract: Optional[Tuple[str, Any]] = None

    async def __call__(self, request: IncomingRequest, response: ResponseDraft, context: Locals) -> StageResult:
        result = self.run(request, response, context)
        if inspect.isawaitable(result):
            result = await result
        return result


def stage(name: Optional[str] = None, provides: Iterable[str] = (), requires: Iterable[str] = ()):
    """
    Decorator that turns a plain (async) function into a Stage.

    Usage:
        @stage(provides={"locale"})
        def negotiate_locale(request, response, context):
            return Continue({"locale": request.header("Accept-Language") or "en"})
    """
    def decorator(fn: StageFn) -> Stage:
        return Stage(
            name=name or fn.__name__,
            run=fn,
            provides=frozenset(provides),
            requires=frozenset(requires),
        )
    return decorator
