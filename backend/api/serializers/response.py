"""
Response envelope helpers.

Every API response uses one envelope:
    {"ok": true,  "data": ..., "meta": {"requestId": "..."}}
    {"ok": false, "error": {"kind": "...", "message": "...", "fields": [...]},
     "meta": {"requestId": "..."}}
"""

from typing import Any, Dict, List, Optional

from flask import g, has_request_context


def _request_meta(meta: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    meta = dict(meta) if meta else {}
    # Always include request ID if available
    if has_request_context() and hasattr(g, 'request_id'):
        meta['requestId'] = g.request_id
    return meta


def error_envelope(
    kind: str,
    message: str,
    fields: Optional[List[Dict[str, str]]] = None,
) -> Dict[str, Any]:
    """
    Build a standardized error response envelope.

    Args:
        kind: Error kind (e.g., "ValidationError")
        message: Human-readable error message (never internal detail)
        fields: Optional [{field, message}] list for validation errors

    Returns:
        {"ok": False, "error": {"kind", "message", "fields"?}, "meta": {...}}
    """
    error: Dict[str, Any] = {
        "kind": kind,
        "message": message,
    }
    if fields is not None:
        error['fields'] = fields
    return {"ok": False, "error": error, "meta": _request_meta()}


def with_request_meta(body: Dict[str, Any]) -> Dict[str, Any]:
    """Attach meta.requestId to an envelope produced by the execution engine."""
    enveloped = dict(body)
    enveloped['meta'] = _request_meta(body.get('meta'))
    return enveloped
