"""
Request logging middleware - one line per procedure call.

Each API request is logged with the procedure it dispatched to, its outcome
("ok", an error kind such as "AuthorizationError", or "abandoned") and, when
a stage halted the chain, the name of that stage:

    procedure_call method=POST path=/api/posts/gallery procedure=create_gallery
        outcome=AuthorizationError halted_by=require_role[admin] status=403 ...

Failed calls are always logged. Successful calls are sampled, except for
watched procedures.

Env vars:
  - REQUEST_LOG_ENABLED (default: true)
  - REQUEST_LOG_SAMPLE_RATE (default: 0.0) share of successful calls logged
  - REQUEST_LOG_ENDPOINTS (comma-separated procedure names or path prefixes to always log)
"""

import logging
import os
import random
import time
from dataclasses import dataclass
from typing import Optional, Tuple

from flask import Flask, g, request

logger = logging.getLogger("api.request")


@dataclass(frozen=True)
class RequestLogPolicy:
    enabled: bool = True
    sample_rate: float = 0.0
    watched: Tuple[str, ...] = ()

    @classmethod
    def from_env(cls) -> "RequestLogPolicy":
        try:
            sample_rate = float(os.environ.get("REQUEST_LOG_SAMPLE_RATE", "0.0"))
        except ValueError:
            sample_rate = 0.0
        raw = os.environ.get("REQUEST_LOG_ENDPOINTS", "")
        return cls(
            enabled=os.environ.get("REQUEST_LOG_ENABLED", "true").lower() == "true",
            sample_rate=sample_rate,
            watched=tuple(p.strip() for p in raw.split(",") if p.strip()),
        )

    def is_watched(self, path: str, procedure: Optional[str]) -> bool:
        return any(
            entry == procedure or (entry.startswith("/") and path.startswith(entry))
            for entry in self.watched
        )

    def wants(self, path: str, procedure: Optional[str], outcome: Optional[str]) -> bool:
        if outcome is not None and outcome != "ok":
            return True
        if self.is_watched(path, procedure):
            return True
        if self.sample_rate <= 0:
            return False
        return self.sample_rate >= 1 or random.random() <= self.sample_rate


def setup_request_logging_middleware(app: Flask, policy: Optional[RequestLogPolicy] = None) -> None:
    """Set up request logging on the Flask app (policy defaults to the env vars above)."""
    policy = policy or RequestLogPolicy.from_env()
    if not policy.enabled:
        return

    api_prefix = app.config.get("API_PREFIX", "/api")

    @app.before_request
    def _start_timer():
        g.request_start = time.perf_counter()

    @app.after_request
    def _log_procedure_call(response):
        path = request.path
        if not path.startswith(api_prefix):
            return response

        procedure = getattr(g, "procedure_name", None)
        outcome = getattr(g, "procedure_outcome", None)
        if not policy.wants(path, procedure, outcome):
            return response

        duration_ms = None
        if hasattr(g, "request_start"):
            duration_ms = round((time.perf_counter() - g.request_start) * 1000, 2)

        logger.info(
            "procedure_call method=%s path=%s procedure=%s outcome=%s halted_by=%s "
            "status=%s duration_ms=%s request_id=%s",
            request.method,
            path,
            procedure or "-",
            outcome or "-",
            getattr(g, "procedure_halted_by", None) or "-",
            response.status_code,
            duration_ms,
            getattr(g, "request_id", None),
        )
        return response
