"""Authentication endpoints."""

from fastapi import APIRouter, status

from app.core.redis_client import RateLimiter, TokenBlacklist
from app.dependencies import CurrentSession, DatabaseSession, RedisClient
from app.schemas.auth import (
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    SessionUser,
    Token,
    TokenRefresh,
)
from app.services.auth_service import AuthService

router = APIRouter()


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a clinic and its admin",
)
async def register(data: RegisterRequest, db: DatabaseSession) -> RegisterResponse:
    """
    Create a clinic together with its first ADMIN account.

    Args:
        data: Admin credentials and clinic details
        db: Database session

    Returns:
        Created admin and clinic id
    """
    return await AuthService(db).register(data)


@router.post(
    "/login",
    response_model=LoginResponse,
    status_code=status.HTTP_200_OK,
    summary="Log in with e-mail and password",
)
async def login(
    data: LoginRequest,
    db: DatabaseSession,
    redis_client: RedisClient,
) -> LoginResponse:
    """
    Verify credentials and return access and refresh tokens.

    Args:
        data: E-mail and password
        db: Database session
        redis_client: Redis client for rate limiting

    Returns:
        Token pair and user summary
    """
    return await AuthService(db).login(data, RateLimiter(redis_client))


@router.post(
    "/refresh",
    response_model=Token,
    status_code=status.HTTP_200_OK,
    summary="Refresh access token",
)
async def refresh_token(
    request: TokenRefresh,
    db: DatabaseSession,
    redis_client: RedisClient,
) -> Token:
    """Exchange a refresh token for a new token pair."""
    return AuthService(db).refresh(request.refresh_token, TokenBlacklist(redis_client))


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Logout and revoke refresh token",
)
async def logout(
    request: TokenRefresh,
    db: DatabaseSession,
    redis_client: RedisClient,
) -> None:
    """Revoke the given refresh token."""
    AuthService(db).logout(request.refresh_token, TokenBlacklist(redis_client))


@router.get(
    "/session",
    response_model=SessionUser,
    status_code=status.HTTP_200_OK,
    summary="Current session",
)
async def get_session(session: CurrentSession) -> SessionUser:
    """Return the identity carried by the access token."""
    return session
