"""
JWT Token Handler for CampusDesk.
Tokens are issued by the identity provider; this module verifies them and can
mint them for service accounts and tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

from jose import jwt, JWTError
from pydantic import BaseModel

from campusdesk.settings import settings

logger = logging.getLogger(__name__)


class TokenPayload(BaseModel):
    """JWT Token payload schema."""
    user_id: str
    email: str
    role: str
    exp: Optional[datetime] = None
    iat: Optional[datetime] = None


def create_access_token(
    user_id: str,
    email: str,
    role: str,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT access token.

    Args:
        user_id: User's unique identifier
        email: User's email
        role: User's role (ADMIN, TEACHER, STUDENT)
        expires_delta: Optional custom expiration time

    Returns:
        JWT token string
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))

    payload = {
        "user_id": user_id,
        "email": email,
        "role": role,
        "exp": expire,
        "iat": now
    }

    token = jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
    logger.info(f"Created access token for user: {email}")
    return token


def verify_token(token: str) -> Optional[TokenPayload]:
    """
    Verify and decode a JWT token.

    Returns:
        TokenPayload if valid, None otherwise
    """
    try:
        # jose checks "exp" itself and raises ExpiredSignatureError (a JWTError)
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        logger.warning(f"Token verification failed: {str(e)}")
        return None

    exp = payload.get("exp")
    iat = payload.get("iat")
    try:
        return TokenPayload(
            user_id=payload.get("user_id"),
            email=payload.get("email"),
            role=payload.get("role"),
            exp=datetime.fromtimestamp(exp, tz=timezone.utc) if exp else None,
            iat=datetime.fromtimestamp(iat, tz=timezone.utc) if iat else None
        )
    except ValueError as e:
        logger.warning(f"Token payload rejected: {str(e)}")
        return None
