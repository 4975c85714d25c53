"""
Authentication Routes - JWT-based session handling

Includes:
- Email/password login (token in the body + session cookie)
- Current principal lookup
- Logout (clears the session cookie)
"""
import logging

from api.contracts.pydantic_models import LoginBody, LoginOut, LogoutOut, UserOut
from api.procedures import AuthenticationError, RouteNode
from services.auth_tokens import check_password
from services.container import Services

from .procedures import SiteProcedures, expose_response

logger = logging.getLogger(__name__)


def _user_out(principal) -> UserOut:
    return UserOut(
        id=principal.id,
        email=principal.email,
        role=principal.role,
        display_name=principal.display_name,
    )


def register_auth_routes(node: RouteNode, services: Services, procedures: SiteProcedures) -> None:

    async def login(ctx):
        """Exchange email/password for a session token"""
        body: LoginBody = ctx.input
        user = await services.users.find_by_email(body.email)

        if user is None or not user.active or not check_password(user.password_hash, body.password):
            logger.info("login_failed reason=bad_credentials")
            raise AuthenticationError("Invalid email or password")

        token = services.tokens.issue(user.id, user.email)
        ctx.response.set_cookie(
            services.session_cookie_name,
            token,
            max_age=services.tokens.max_age_seconds,
            httponly=True,
            secure=services.session_cookie_secure,
            samesite="Lax",
        )
        logger.info(f"login_succeeded user_id={user.id}")
        return LoginOut(token=token, user=_user_out(user.to_principal()))

    def me(ctx):
        """Current authenticated user"""
        return _user_out(ctx.user)

    def logout(ctx):
        """Clear the session cookie"""
        ctx.response.delete_cookie(services.session_cookie_name)
        return LogoutOut(logged_out=True)

    node.config({
        "/login": {
            "POST": procedures.public
            .extend(expose_response)
            .with_body_validation(LoginBody)
            .finalize("POST", "/login", login, output=LoginOut),
        },
        "/me": {
            "GET": procedures.authed.finalize("GET", "/me", me, output=UserOut),
        },
        "/logout": {
            "POST": procedures.public
            .extend(expose_response)
            .finalize("POST", "/logout", logout, output=LogoutOut),
        },
    })
