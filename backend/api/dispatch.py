"""
Flask dispatcher - mounts a frozen RouteTree under the API prefix.

A single catch-all view resolves (method, path) through RouteTree.lookup,
hands the request to the ExecutionEngine and converts the resulting
ProcedureResponse into a flask.Response. Unmatched routes get the standard
NotFoundError envelope.
"""

import logging
import socket
from typing import Any, Dict

from flask import Blueprint, Response, g, jsonify, request

from api.procedures.engine import ExecutionEngine
from api.procedures.errors import NotFoundError, ProcedureBuildError
from api.procedures.http import IncomingRequest, ProcedureResponse
from api.procedures.routes import RouteMatch, RouteTree
from api.serializers.response import error_envelope, with_request_meta

logger = logging.getLogger('api.dispatch')

DISPATCH_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]

# Non-standard status used when the client went away before a response was produced
CLIENT_CLOSED_REQUEST = 499


def client_disconnected(sock: socket.socket) -> bool:
    """EOF on a non-blocking peek means the client closed its end of the connection."""
    try:
        return sock.recv(1, socket.MSG_PEEK | socket.MSG_DONTWAIT) == b""
    except (BlockingIOError, InterruptedError):
        return False
    except OSError:
        return True


def build_incoming_request(match: RouteMatch) -> IncomingRequest:
    """Snapshot the current flask.request for the stage chain."""
    body = request.get_json(silent=True) if request.is_json else None
    extra: Dict[str, Any] = {}
    # werkzeug's server exposes the client socket; elsewhere requests never abort
    sock = request.environ.get('werkzeug.socket')
    if sock is not None:
        extra['is_aborted'] = lambda: client_disconnected(sock)
    return IncomingRequest(
        method=request.method,
        path=request.path,
        headers=dict(request.headers),
        query=request.args.to_dict(flat=False),
        body=body,
        body_is_json=request.is_json and body is not None,
        cookies=dict(request.cookies),
        path_params=dict(match.path_params),
        request_id=getattr(g, 'request_id', None),
        **extra,
    )


def to_flask_response(outcome: ProcedureResponse) -> Response:
    response = jsonify(with_request_meta(outcome.body))
    response.status_code = outcome.status_code
    for name, value in outcome.headers.items():
        response.headers[name] = value
    for cookie in outcome.cookies:
        response.set_cookie(**cookie)
    return response


def create_dispatch_blueprint(tree: RouteTree, engine: ExecutionEngine) -> Blueprint:
    """
    Build the blueprint that serves every endpoint in `tree`.

    Raises:
        ProcedureBuildError: If the tree is still open for registration
    """
    if not tree.frozen:
        raise ProcedureBuildError("Route tree must be frozen before it is mounted")

    bp = Blueprint('procedures', __name__)

    @bp.route('/', defaults={'path': ''}, methods=DISPATCH_METHODS)
    @bp.route('/<path:path>', methods=DISPATCH_METHODS)
    async def dispatch(path):
        match = tree.lookup(request.method, '/' + path)
        if match is None:
            return jsonify(error_envelope("NotFoundError", NotFoundError.default_message)), 404

        g.procedure_name = match.endpoint.name
        outcome = await engine.execute(match.endpoint, build_incoming_request(match))
        if outcome is None:
            g.procedure_outcome = "abandoned"
            return Response(status=CLIENT_CLOSED_REQUEST)
        g.procedure_outcome = outcome.outcome
        g.procedure_halted_by = outcome.halted_by
        return to_flask_response(outcome)

    return bp
