"""User account helpers shared by the profile services."""

from collections.abc import Iterable
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestException
from app.core.security import get_password_hash
from app.models.users import users
from app.schemas.users import UserResponse, UserRole


class UserService:
    """Service for user account operations."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def get_user_by_id(self, user_id: UUID) -> dict | None:
        """Get user by internal ID."""
        result = await self.db.execute(select(users).where(users.c.id == user_id))
        user = result.mappings().first()
        return dict(user) if user else None

    async def get_user_by_email(self, email: str) -> dict | None:
        """Get user by e-mail."""
        result = await self.db.execute(select(users).where(users.c.email == email.lower()))
        user = result.mappings().first()
        return dict(user) if user else None

    async def ensure_email_available(self, email: str, exclude_user_id: UUID | None = None) -> None:
        """
        Check that no other account uses this e-mail.

        Raises:
            BadRequestException: If the e-mail is taken
        """
        existing = await self.get_user_by_email(email)
        if existing and existing["id"] != exclude_user_id:
            raise BadRequestException("User with this email already exists")

    async def create_user(
        self,
        email: str,
        role: UserRole,
        clinic_id: UUID | None,
        password: str | None = None,
    ) -> dict:
        """Create a user account; the caller commits."""
        await self.ensure_email_available(email)

        result = await self.db.execute(
            insert(users)
            .values(
                email=email.lower(),
                password_hash=get_password_hash(password) if password else None,
                role=role.value,
                clinic_id=clinic_id,
            )
            .returning(users)
        )
        return dict(result.mappings().one())

    async def update_credentials(
        self,
        user_id: UUID,
        email: str | None = None,
        password: str | None = None,
    ) -> None:
        """Change e-mail and/or password; the caller commits."""
        values: dict = {}
        if email:
            await self.ensure_email_available(email, exclude_user_id=user_id)
            values["email"] = email.lower()
        if password:
            values["password_hash"] = get_password_hash(password)

        if not values:
            return

        values["updated_at"] = datetime.now(UTC)
        await self.db.execute(update(users).where(users.c.id == user_id).values(**values))

    async def get_users_by_ids(self, user_ids: Iterable[UUID]) -> dict[UUID, UserResponse]:
        """Load user responses keyed by id."""
        ids = set(user_ids)
        if not ids:
            return {}

        result = await self.db.execute(select(users).where(users.c.id.in_(ids)))
        return {row["id"]: UserResponse.model_validate(dict(row)) for row in result.mappings()}
