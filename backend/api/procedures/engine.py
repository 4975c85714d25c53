"""
Execution engine - runs one request through an endpoint's stage chain.

Per request:
    Pending -> Running(0) -> Running(1) -> ... -> handler -> Responded
                    \\-- Halt(response) ------------------------> Responded

Guarantees:
- Stages run strictly in append order, each at most once.
- A Halt stops the chain; later stages and the handler never run.
- Exactly one ProcedureResponse is returned per request. Unexpected
  failures are logged in full and answered with a generic InternalError.
- If the client went away (request.is_aborted()), the chain is abandoned
  before the next stage/handler and `execute` returns None.
"""

import inspect
import logging
import os
from enum import Enum
from typing import Any, Optional

from pydantic import ValidationError as SchemaValidationError
from pydantic_core import to_jsonable_python

from .errors import InternalError, ProcedureError
from .http import IncomingRequest, ProcedureResponse, ResponseDraft
from .procedure import EndpointDefinition
from .stage import Continue, Halt, Locals

logger = logging.getLogger('api.procedures.engine')


class SchemaMode(Enum):
    """Output contract enforcement mode."""
    WARN = "warn"      # Log violations, still respond (production default)
    STRICT = "strict"  # Violations become InternalError (dev/test)


def get_default_mode() -> SchemaMode:
    """Get schema mode from environment."""
    mode = os.environ.get('CONTRACT_MODE', 'warn').lower()
    return SchemaMode.STRICT if mode == 'strict' else SchemaMode.WARN


class ExecutionEngine:
    """Stateless executor; one instance is shared by all requests."""

    def __init__(self, mode: Optional[SchemaMode] = None):
        self.mode = mode or get_default_mode()

    async def execute(self, endpoint: EndpointDefinition, request: IncomingRequest) -> Optional[ProcedureResponse]:
        draft = ResponseDraft()
        context = Locals({"params": dict(request.path_params)})

        try:
            for index, stage in enumerate(endpoint.stages):
                if request.is_aborted():
                    return self._abandon(endpoint, request, at=stage.name)

                outcome = await stage(request, draft, context)

                if isinstance(outcome, Halt):
                    outcome.response.halted_by = stage.name
                    logger.debug(
                        f"procedure_halted endpoint={endpoint.name} stage={stage.name} "
                        f"index={index} status={outcome.response.status_code} request_id={request.request_id}"
                    )
                    return outcome.response.merge_draft(draft)
                if not isinstance(outcome, Continue):
                    raise TypeError(
                        f"Stage '{stage.name}' returned {type(outcome).__name__}, expected Continue or Halt"
                    )
                context = context.merged(outcome.patch)

            if request.is_aborted():
                return self._abandon(endpoint, request, at="handler")

            result = endpoint.handler(context)
            if inspect.isawaitable(result):
                result = await result

        except ProcedureError as e:
            return ProcedureResponse.from_error(e).merge_draft(draft)
        except Exception as e:
            return self._internal_error(endpoint, request, e)

        return self._serialize(endpoint, request, result).merge_draft(draft)

    def _serialize(self, endpoint: EndpointDefinition, request: IncomingRequest, result: Any) -> ProcedureResponse:
        adapter = endpoint.output_adapter
        try:
            try:
                validated = adapter.validate_python(result, from_attributes=True)
            except SchemaValidationError as e:
                if self.mode == SchemaMode.STRICT:
                    return self._internal_error(endpoint, request, e)
                self._log_violation(endpoint, request, e)
                data = to_jsonable_python(result, by_alias=True)
            else:
                data = adapter.dump_python(validated, mode="json", by_alias=True)
        except Exception as e:
            return self._internal_error(endpoint, request, e)
        return ProcedureResponse.success(data)

    def _abandon(self, endpoint: EndpointDefinition, request: IncomingRequest, at: str) -> None:
        logger.info(
            f"procedure_abandoned endpoint={endpoint.name} before={at} request_id={request.request_id}"
        )
        return None

    def _internal_error(self, endpoint: EndpointDefinition, request: IncomingRequest,
                        error: BaseException) -> ProcedureResponse:
        logger.error(
            f"Unhandled error in {endpoint.method} {endpoint.path} ({endpoint.name})",
            exc_info=error,
            extra={
                "event": "procedure_error",
                "endpoint": endpoint.name,
                "request_id": request.request_id,
                "error_type": type(error).__name__,
            },
        )
        return ProcedureResponse.from_error(InternalError())

    def _log_violation(self, endpoint: EndpointDefinition, request: IncomingRequest,
                       violation: SchemaValidationError) -> None:
        logger.warning(
            f"Contract violation: endpoint={endpoint.name} stage=response "
            f"request_id={request.request_id} errors={violation.error_count()}",
            extra={
                "event": "contract_violation",
                "endpoint": endpoint.name,
                "stage": "response",
                "request_id": request.request_id,
                "details": violation.errors(include_url=False),
            },
        )
