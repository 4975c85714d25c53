"""
Transport-neutral request and response values used by stages and the engine.

The Flask adapter (api/dispatch.py) builds an IncomingRequest from
flask.request and turns a ProcedureResponse back into a flask.Response.
Keeping these plain lets the engine run (and be tested) without a WSGI stack.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from .errors import ProcedureError


def _never_aborted() -> bool:
    return False


@dataclass(frozen=True)
class IncomingRequest:
    """An inbound HTTP request as seen by the stage chain."""
    method: str
    path: str
    headers: Mapping[str, str] = field(default_factory=dict)
    query: Mapping[str, List[str]] = field(default_factory=dict)
    body: Any = None
    body_is_json: bool = True
    cookies: Mapping[str, str] = field(default_factory=dict)
    path_params: Mapping[str, Any] = field(default_factory=dict)
    request_id: Optional[str] = None
    is_aborted: Callable[[], bool] = _never_aborted

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None


class ResponseDraft:
    """
    Mutable response side-channel shared by the stages of one request.

    Stages and handlers may set headers or cookies here; the body and status
    are decided by the engine from the Continue/Halt outcome.
    """

    def __init__(self):
        self.headers: Dict[str, str] = {}
        self.cookies: List[Dict[str, Any]] = []

    def set_header(self, name: str, value: str) -> None:
        self.headers[name] = value

    def set_cookie(self, name: str, value: str, max_age: Optional[int] = None,
                   httponly: bool = True, secure: bool = False, samesite: str = "Lax") -> None:
        self.cookies.append({
            "key": name,
            "value": value,
            "max_age": max_age,
            "httponly": httponly,
            "secure": secure,
            "samesite": samesite,
        })

    def delete_cookie(self, name: str) -> None:
        self.set_cookie(name, "", max_age=0)


@dataclass
class ProcedureResponse:
    """The single response produced for one request."""
    status_code: int
    body: Dict[str, Any]
    headers: Dict[str, str] = field(default_factory=dict)
    cookies: List[Dict[str, Any]] = field(default_factory=list)
    # Name of the stage that halted the chain, if any
    halted_by: Optional[str] = None

    @property
    def ok(self) -> bool:
        return bool(self.body.get("ok"))

    @property
    def outcome(self) -> str:
        """Either 'ok' or the error kind; used by the request log."""
        if self.ok:
            return "ok"
        return (self.body.get("error") or {}).get("kind", "InternalError")

    @classmethod
    def success(cls, data: Any, status_code: int = 200) -> "ProcedureResponse":
        return cls(status_code=status_code, body={"ok": True, "data": data})

    @classmethod
    def from_error(cls, error: ProcedureError) -> "ProcedureResponse":
        return cls(status_code=error.status_code, body={"ok": False, "error": error.to_dict()})

    def merge_draft(self, draft: ResponseDraft) -> "ProcedureResponse":
        """Fold headers/cookies collected during the chain into this response."""
        merged_headers = dict(draft.headers)
        merged_headers.update(self.headers)
        self.headers = merged_headers
        self.cookies = list(draft.cookies) + list(self.cookies)
        return self
