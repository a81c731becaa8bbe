"""FastAPI dependencies."""

from typing import Annotated, Any

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import UnauthorizedException
from app.core.payments import StripeGateway, get_payment_gateway
from app.core.redis_client import get_redis_client
from app.core.security import decode_access_token
from app.database import get_db
from app.schemas.auth import Caller, SessionUser
from app.services.auth_service import AuthService

# Security; missing credentials are reported as 401 by get_session_user
security = HTTPBearer(auto_error=False)


async def get_session_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> SessionUser:
    """
    Resolve the session carried by the bearer token.

    Role and clinic come from the signed token claims only.

    Args:
        credentials: Bearer token credentials

    Returns:
        Session identity

    Raises:
        UnauthorizedException: If the token is missing, invalid or expired
    """
    if credentials is None:
        raise UnauthorizedException("Not authenticated")

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise UnauthorizedException("Could not validate credentials")

    try:
        return SessionUser(
            user_id=payload.get("sub"),
            role=payload.get("role"),
            clinic_id=payload.get("clinic_id"),
            email=payload.get("email"),
        )
    except ValidationError:
        raise UnauthorizedException("Could not validate credentials")


async def get_current_caller(
    session: Annotated[SessionUser, Depends(get_session_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Caller:
    """
    Get the caller with their own patient or doctor profile id attached.

    Args:
        session: Identity from the token
        db: Database session

    Returns:
        Caller used by authorization checks
    """
    return await AuthService(db).resolve_caller(session)


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CurrentSession = Annotated[SessionUser, Depends(get_session_user)]
CurrentCaller = Annotated[Caller, Depends(get_current_caller)]
RedisClient = Annotated[Any, Depends(get_redis_client)]
PaymentGateway = Annotated[StripeGateway, Depends(get_payment_gateway)]
