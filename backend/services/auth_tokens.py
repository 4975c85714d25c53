"""
Token Service - JWT issue/verify and password hashing.

Tokens are HS256 JWTs carrying the user id as `sub`; the same token is
accepted as `Authorization: Bearer <token>` or as the session cookie.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from werkzeug.security import check_password_hash, generate_password_hash

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    """Hash a password for storage."""
    return generate_password_hash(password)


def check_password(password_hash: str, password: str) -> bool:
    """Check if provided password matches hash."""
    if not password_hash:
        return False
    return check_password_hash(password_hash, password)


class TokenService:
    """Issue and verify session tokens."""

    def __init__(self, secret: str, algorithm: str = "HS256", expiration_hours: int = 24):
        if not secret:
            raise ValueError("TokenService requires a non-empty secret")
        self.secret = secret
        self.algorithm = algorithm
        self.expiration_hours = expiration_hours

    @property
    def max_age_seconds(self) -> int:
        return self.expiration_hours * 3600

    def issue(self, user_id: int, email: str) -> str:
        """Generate JWT token for user."""
        now = datetime.now(timezone.utc)
        payload = {
            'sub': str(user_id),
            'email': email,
            'iat': now,
            'exp': now + timedelta(hours=self.expiration_hours),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Optional[int]:
        """Verify JWT token and return user_id (None if invalid or expired)."""
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            logger.debug("token_rejected reason=expired")
            return None
        except jwt.InvalidTokenError:
            logger.debug("token_rejected reason=invalid")
            return None

        subject = payload.get('sub')
        try:
            return int(subject)
        except (TypeError, ValueError):
            return None
