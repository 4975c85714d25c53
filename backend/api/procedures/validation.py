"""
Validation adapter - builds stages from pydantic contract models.

The same model class is the runtime parser (here) and the declared shape
published to clients (api/contracts/registry.py), so the two cannot drift.

Unknown-field policy must be explicit on every contract model: a model
whose model_config does not set `extra` is refused at build time.
"""

import types
import typing
from typing import Any, Dict, List, Mapping, Type

from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from .errors import ProcedureBuildError, ValidationError
from .http import IncomingRequest, ResponseDraft
from .stage import Continue, Halt, Locals, Stage, StageResult

_SEQUENCE_ORIGINS = (list, tuple, set, frozenset)
_UNION_ORIGINS = tuple(o for o in (typing.Union, getattr(types, "UnionType", None)) if o is not None)


def _require_contract_model(schema: Any) -> None:
    if not (isinstance(schema, type) and issubclass(schema, BaseModel)):
        raise ProcedureBuildError(f"Validation schema must be a pydantic model class, got {schema!r}")
    if schema.model_config.get("extra") is None:
        raise ProcedureBuildError(
            f"{schema.__name__} must declare an explicit unknown-field policy "
            f"(model_config extra='forbid' | 'ignore')"
        )


def format_schema_errors(exc: SchemaValidationError, root: str) -> List[Dict[str, str]]:
    """Flatten every pydantic error into the envelope's [{field, message}] list."""
    fields = []
    for err in exc.errors(include_url=False):
        loc = ".".join(str(part) for part in err.get("loc", ())) or root
        fields.append({"field": loc, "message": err.get("msg", "Invalid value")})
    return fields


def _is_sequence_annotation(annotation: Any) -> bool:
    origin = typing.get_origin(annotation)
    if origin in _SEQUENCE_ORIGINS:
        return True
    if origin in _UNION_ORIGINS:
        return any(_is_sequence_annotation(arg) for arg in typing.get_args(annotation))
    return annotation in _SEQUENCE_ORIGINS


def collect_query_params(query: Mapping[str, List[str]], schema: Type[BaseModel]) -> Dict[str, Any]:
    """
    Turn a multi-valued query mapping into model input.

    Sequence-typed fields receive every value (`tag=a&tag=b` or `tag[]=a`);
    all other fields receive the first value.
    """
    sequence_keys = set()
    for name, info in schema.model_fields.items():
        if _is_sequence_annotation(info.annotation):
            sequence_keys.add(name)
            if info.alias:
                sequence_keys.add(info.alias)

    collected: Dict[str, Any] = {}
    for raw_key, values in query.items():
        key = raw_key[:-2] if raw_key.endswith("[]") else raw_key
        if isinstance(values, str):
            values = [values]
        if not values:
            continue
        if key in sequence_keys:
            collected.setdefault(key, []).extend(values)
        else:
            collected.setdefault(key, values[0])
    return collected


def body_validation_stage(schema: Type[BaseModel]) -> Stage:
    """Stage that parses the JSON body into `schema` and provides `input`."""
    _require_contract_model(schema)

    def validate_body(request: IncomingRequest, response: ResponseDraft, context: Locals) -> StageResult:
        if not request.body_is_json or not isinstance(request.body, dict):
            return Halt.with_error(ValidationError(
                "Request body must be a JSON object",
                fields=[{"field": "body", "message": "Expected a JSON object"}],
            ))
        try:
            parsed = schema.model_validate(request.body)
        except SchemaValidationError as e:
            return Halt.with_error(ValidationError(fields=format_schema_errors(e, root="body")))
        return Continue({"input": parsed})

    return Stage(
        name=f"validate_body[{schema.__name__}]",
        run=validate_body,
        provides=frozenset({"input"}),
        contract=("input", schema),
    )


def query_validation_stage(schema: Type[BaseModel]) -> Stage:
    """Stage that parses the query string into `schema` and provides `query`."""
    _require_contract_model(schema)

    def validate_query(request: IncomingRequest, response: ResponseDraft, context: Locals) -> StageResult:
        raw = collect_query_params(request.query, schema)
        try:
            parsed = schema.model_validate(raw)
        except SchemaValidationError as e:
            return Halt.with_error(ValidationError(
                "Query parameter validation failed",
                fields=format_schema_errors(e, root="query"),
            ))
        return Continue({"query": parsed})

    return Stage(
        name=f"validate_query[{schema.__name__}]",
        run=validate_query,
        provides=frozenset({"query"}),
        contract=("query", schema),
    )
