"""Security utilities for JWT and password handling."""

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.config import settings

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Verify a password against a hash; accounts without a password never match."""
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password."""
    return pwd_context.hash(password)


def _encode_token(data: dict[str, Any], token_type: str, expires_delta: timedelta) -> str:
    """Sign a JWT of the given type."""
    now = datetime.now(UTC)
    to_encode = data.copy()
    to_encode.update(
        {
            "exp": now + expires_delta,
            "iat": now,
            "type": token_type,
            "jti": uuid4().hex,
        }
    )

    return jwt.encode(
        to_encode,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        data: Session claims (sub, role, clinic_id, email)
        expires_delta: Optional expiration time delta

    Returns:
        Encoded JWT token
    """
    return _encode_token(
        data,
        ACCESS_TOKEN_TYPE,
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes),
    )


def create_refresh_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a JWT refresh token.

    Args:
        data: Session claims (sub, role, clinic_id, email)
        expires_delta: Optional expiration time delta

    Returns:
        Encoded JWT refresh token
    """
    return _encode_token(
        data,
        REFRESH_TOKEN_TYPE,
        expires_delta or timedelta(days=settings.refresh_token_expire_days),
    )


def _decode_token(token: str, expected_type: str) -> dict[str, Any] | None:
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return None

    if payload.get("type") != expected_type:
        return None

    return payload


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Decode and validate a JWT access token, returning None if invalid."""
    return _decode_token(token, ACCESS_TOKEN_TYPE)


def decode_refresh_token(token: str) -> dict[str, Any] | None:
    """Decode and validate a JWT refresh token, returning None if invalid."""
    return _decode_token(token, REFRESH_TOKEN_TYPE)
