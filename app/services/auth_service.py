"""Authentication service: registration, password login and token lifecycle."""

from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import RateLimitException, UnauthorizedException
from app.core.redis_client import RateLimiter, TokenBlacklist
from app.core.security import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    verify_password,
)
from app.models.clinics import clinics
from app.models.doctors import doctors
from app.models.patients import patients
from app.models.users import users
from app.schemas.auth import (
    Caller,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    SessionUser,
    Token,
    UserSummary,
)
from app.schemas.users import UserRole
from app.services.user_service import UserService

logger = structlog.get_logger(__name__)


def session_claims(user: dict[str, Any]) -> dict[str, Any]:
    """Build the signed session claims for a user row."""
    return {
        "sub": str(user["id"]),
        "role": user["role"],
        "clinic_id": str(user["clinic_id"]) if user["clinic_id"] else None,
        "email": user["email"],
    }


def issue_tokens(claims: dict[str, Any]) -> Token:
    """Create an access/refresh token pair for the given claims."""
    return Token(
        access_token=create_access_token(claims),
        refresh_token=create_refresh_token(claims),
    )


class AuthService:
    """Service for authentication operations."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def register(self, data: RegisterRequest) -> RegisterResponse:
        """
        Create a clinic together with its first ADMIN user.

        Args:
            data: Registration payload

        Returns:
            Created admin summary and clinic id

        Raises:
            BadRequestException: If the e-mail is already registered
        """
        user_service = UserService(self.db)
        await user_service.ensure_email_available(data.email)

        clinic_result = await self.db.execute(
            insert(clinics)
            .values(
                name=data.clinic_name,
                address=data.clinic_address or "",
                phone=data.clinic_phone or "",
            )
            .returning(clinics.c.id)
        )
        clinic_id = clinic_result.scalar_one()

        user = await user_service.create_user(
            data.email, UserRole.ADMIN, clinic_id, password=data.password
        )
        await self.db.commit()

        logger.info("clinic_registered", clinic_id=str(clinic_id), user_id=str(user["id"]))

        return RegisterResponse(
            message="Clinic and admin account created successfully",
            user=UserSummary.model_validate(user),
            clinic_id=clinic_id,
        )

    async def login(self, data: LoginRequest, rate_limiter: RateLimiter) -> LoginResponse:
        """
        Verify e-mail and password and open a session.

        Raises:
            RateLimitException: If too many attempts were made for this e-mail
            UnauthorizedException: If the credentials are invalid
        """
        email = data.email.lower()
        if not rate_limiter.check_rate_limit(
            f"login:{email}", limit=settings.login_rate_limit_per_minute
        ):
            logger.warning("login_rate_limited", email=email)
            raise RateLimitException("Too many login attempts, try again later")

        user = await UserService(self.db).get_user_by_email(email)
        if not user or not verify_password(data.password, user["password_hash"]):
            logger.info("login_failed", email=email)
            raise UnauthorizedException("Invalid email or password")

        if not user["is_active"]:
            raise UnauthorizedException("User account is deactivated")

        await self.db.execute(
            update(users).where(users.c.id == user["id"]).values(last_login_at=datetime.now(UTC))
        )
        await self.db.commit()

        tokens = issue_tokens(session_claims(user))
        logger.info("user_logged_in", user_id=str(user["id"]), role=user["role"])

        return LoginResponse(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            user=UserSummary.model_validate(user),
        )

    def refresh(self, refresh_token: str, blacklist: TokenBlacklist) -> Token:
        """
        Exchange a refresh token for a new token pair.

        The session claims are carried over unchanged; the old refresh token
        is revoked.

        Raises:
            UnauthorizedException: If the refresh token is invalid or revoked
        """
        payload = decode_refresh_token(refresh_token)
        if payload is None or blacklist.is_revoked(refresh_token):
            raise UnauthorizedException("Invalid refresh token")

        claims = {key: payload.get(key) for key in ("sub", "role", "clinic_id", "email")}
        blacklist.revoke(refresh_token, ttl=self._remaining_ttl(payload))
        return issue_tokens(claims)

    def logout(self, refresh_token: str, blacklist: TokenBlacklist) -> None:
        """Revoke a refresh token; invalid tokens are ignored."""
        payload = decode_refresh_token(refresh_token)
        if payload is None:
            return

        blacklist.revoke(refresh_token, ttl=self._remaining_ttl(payload))
        logger.info("user_logged_out", user_id=payload.get("sub"))

    @staticmethod
    def _remaining_ttl(payload: dict[str, Any]) -> int:
        exp = payload.get("exp")
        if not exp:
            return settings.refresh_token_expire_days * 86400
        return max(int(exp - datetime.now(UTC).timestamp()), 1)

    async def resolve_caller(self, session: SessionUser) -> Caller:
        """Attach the caller's own patient or doctor profile id to the session."""
        patient_id = None
        doctor_id = None

        if session.role == UserRole.PATIENT:
            result = await self.db.execute(
                select(patients.c.id).where(patients.c.user_id == session.user_id)
            )
            patient_id = result.scalar_one_or_none()
        elif session.role == UserRole.DOCTOR:
            result = await self.db.execute(
                select(doctors.c.id).where(doctors.c.user_id == session.user_id)
            )
            doctor_id = result.scalar_one_or_none()

        return Caller(**session.model_dump(), patient_id=patient_id, doctor_id=doctor_id)
