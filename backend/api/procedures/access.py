"""
Access control stages (authentication + role guard).

    AuthenticationStage  -> provides `user` or halts 401
    RoleGuardStage       -> requires `user`, halts 403 on a role mismatch

Because RoleGuardStage declares requires={"user"}, a procedure that places
a guard before authentication is rejected by Procedure.extend at startup.
If a guard is nonetheless run without `user` (hand-assembled chain), it
fails closed: Locals.require raises and the engine answers InternalError.
"""

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Optional, Union

from .errors import AuthenticationError, AuthorizationError
from .http import IncomingRequest, ResponseDraft
from .stage import Continue, Halt, Locals, Stage, StageResult

logger = logging.getLogger('api.procedures.access')


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, as exposed to handlers via context.user."""
    id: int
    email: str
    role: str
    display_name: Optional[str] = None
    active: bool = True

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "role": self.role,
            "displayName": self.display_name,
        }


TokenVerifier = Callable[[str], Optional[Any]]
PrincipalLoader = Callable[[Any], Union[Optional[Principal], Awaitable[Optional[Principal]]]]


def extract_credential(request: IncomingRequest, cookie_name: str = "session") -> Optional[str]:
    """Bearer token from the Authorization header, falling back to the session cookie."""
    auth_header = request.header("Authorization")
    if auth_header:
        scheme, _, token = auth_header.partition(" ")
        if scheme.lower() == "bearer" and token.strip():
            return token.strip()
        return None
    cookie = request.cookies.get(cookie_name)
    return cookie or None


def AuthenticationStage(verify_token: TokenVerifier, load_principal: PrincipalLoader,
                        cookie_name: str = "session") -> Stage:
    """
    Build the authentication stage.

    Args:
        verify_token: Returns the token subject (user id) or None if invalid/expired
        load_principal: Resolves a subject to a Principal (may be async)
        cookie_name: Session cookie consulted when no Authorization header is sent
    """

    async def authenticate(request: IncomingRequest, response: ResponseDraft, context: Locals) -> StageResult:
        token = extract_credential(request, cookie_name)
        if not token:
            return Halt.with_error(AuthenticationError("Authentication required"))

        subject = verify_token(token)
        if subject is None:
            logger.info(f"auth_rejected reason=invalid_token request_id={request.request_id}")
            return Halt.with_error(AuthenticationError("Invalid or expired credentials"))

        principal = load_principal(subject)
        if inspect.isawaitable(principal):
            principal = await principal
        if principal is None or not principal.active:
            logger.info(f"auth_rejected reason=unknown_principal subject={subject} request_id={request.request_id}")
            return Halt.with_error(AuthenticationError("Invalid or expired credentials"))

        return Continue({"user": principal})

    return Stage(name="authenticate", run=authenticate, provides=frozenset({"user"}))


def RoleGuardStage(required_roles: Iterable[str]) -> Stage:
    """Build a stage that only lets principals with one of `required_roles` through."""
    roles = frozenset(required_roles)
    if not roles:
        raise ValueError("RoleGuardStage needs at least one role")

    def guard_role(request: IncomingRequest, response: ResponseDraft, context: Locals) -> StageResult:
        user = context.require("user")
        if user.role not in roles:
            logger.info(
                f"authz_denied user_id={user.id} role={user.role} "
                f"required={sorted(roles)} request_id={request.request_id}"
            )
            return Halt.with_error(AuthorizationError())
        return Continue()

    return Stage(
        name=f"require_role[{','.join(sorted(roles))}]",
        run=guard_role,
        requires=frozenset({"user"}),
    )
