"""
Authentication utilities for JWT bearer sessions.
Tokens are issued by the hosted auth provider; the API only decodes them into
a Session carrying the caller's identity and role.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from app.config import Settings
import logging

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


class Session:
    """Authenticated identity decoded from a bearer token."""

    def __init__(self, user_id: str, email: str, role: Optional[str], exp: datetime):
        self.user_id = user_id
        self.email = email
        self.role = role
        self.exp = exp

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Session":
        """Create Session from a decoded token payload."""
        return cls(
            user_id=data["sub"],
            email=data["email"],
            role=data.get("role"),
            exp=datetime.fromtimestamp(data["exp"], tz=timezone.utc)
        )

    def __repr__(self) -> str:
        return f"<Session(user_id={self.user_id}, role={self.role})>"


def create_access_token(
    user_id: str,
    email: str,
    role: str,
    settings: Settings,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create JWT access token with user claims.

    Args:
        user_id: Identity provider user id
        email: User's email address
        role: User's role (admin/editor)
        settings: Application settings holding the signing key
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))

    to_encode = {
        "sub": str(user_id),
        "email": email,
        "role": role,
        "exp": expire,
        "iat": now,
        "type": "access"
    }

    return jwt.encode(
        to_encode,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm
    )


def decode_session(token: Optional[str], settings: Settings) -> Optional[Session]:
    """
    Decode a bearer token into a Session.

    Args:
        token: JWT token string, may be empty
        settings: Application settings holding the signing key

    Returns:
        Session if the token is valid, None if absent, invalid or expired
    """
    if not token:
        return None

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm]
        )
    except JWTError as e:
        logger.info(f"Rejected bearer token: {e}")
        return None

    if payload.get("type") != "access" or not payload.get("sub") or not payload.get("email"):
        logger.info("Rejected bearer token: invalid payload")
        return None

    return Session.from_dict(payload)

