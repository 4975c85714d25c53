"""
Pydantic models for /auth endpoints.

Endpoints:
- POST /auth/login - Exchange email/password for a token (+ session cookie)
- GET /auth/me - Current principal (Authorization header or session cookie)
- POST /auth/logout - Clear the session cookie
"""

from typing import Optional

from pydantic import Field

from .base import BaseBodyModel, BaseOutputModel
from .types import Role


class LoginBody(BaseBodyModel):
    """Body for POST /auth/login."""
    email: str = Field(..., min_length=3, max_length=255, pattern=r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
    password: str = Field(..., min_length=1, max_length=512)


class UserOut(BaseOutputModel):
    id: int
    email: str
    role: Role
    display_name: Optional[str] = None


class LoginOut(BaseOutputModel):
    token: str
    user: UserOut


class LogoutOut(BaseOutputModel):
    logged_out: bool
