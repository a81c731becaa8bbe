"""Staff (receptionist account) service."""

from uuid import UUID

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ForbiddenException, NotFoundException
from app.core.permissions import Operation, ensure_allowed
from app.core.tenancy import scoped
from app.models.users import users
from app.schemas.auth import Caller
from app.schemas.users import StaffCreate, StaffUpdate, UserResponse, UserRole
from app.services.user_service import UserService

logger = structlog.get_logger(__name__)


class StaffService:
    """Service for managing receptionist accounts."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db
        self.users = UserService(db)

    async def _get_receptionist(self, user_id: UUID, caller: Caller) -> dict:
        user = await self.users.get_user_by_id(user_id)
        # Only receptionists are addressable through this surface
        if not user or user["role"] != UserRole.RECEPTIONIST.value:
            raise NotFoundException("Staff member not found")

        if caller.clinic_id is not None and user["clinic_id"] != caller.clinic_id:
            raise ForbiddenException("Unauthorized access to this staff member")
        return user

    async def list_staff(self, caller: Caller, search: str | None = None) -> list[UserResponse]:
        """List receptionists of the caller's clinic, newest first."""
        ensure_allowed(Operation.STAFF_VIEW, caller)

        conditions = [users.c.role == UserRole.RECEPTIONIST.value]
        if search:
            conditions.append(func.lower(users.c.email).like(f"%{search.lower()}%"))

        query = (
            select(users)
            .where(*scoped(conditions, users, caller.clinic_id))
            .order_by(users.c.created_at.desc())
        )
        result = await self.db.execute(query)
        return [UserResponse.model_validate(dict(row)) for row in result.mappings()]

    async def get_staff(self, user_id: UUID, caller: Caller) -> UserResponse:
        """Get a receptionist by ID."""
        ensure_allowed(Operation.STAFF_VIEW, caller)
        return UserResponse.model_validate(await self._get_receptionist(user_id, caller))

    async def create_staff(self, data: StaffCreate, caller: Caller) -> UserResponse:
        """Create a receptionist account at the caller's clinic (ADMIN only)."""
        ensure_allowed(Operation.STAFF_MANAGE, caller)

        user = await self.users.create_user(
            data.email, UserRole.RECEPTIONIST, caller.clinic_id, password=data.password
        )
        await self.db.commit()

        logger.info("staff_created", user_id=str(user["id"]), clinic_id=str(caller.clinic_id))
        return UserResponse.model_validate(user)

    async def update_staff(self, user_id: UUID, data: StaffUpdate, caller: Caller) -> UserResponse:
        """Change a receptionist's e-mail and/or password (ADMIN only)."""
        ensure_allowed(Operation.STAFF_MANAGE, caller)
        await self._get_receptionist(user_id, caller)

        await self.users.update_credentials(user_id, email=data.email, password=data.password)
        await self.db.commit()

        return UserResponse.model_validate(await self.users.get_user_by_id(user_id))

    async def delete_staff(self, user_id: UUID, caller: Caller) -> None:
        """Delete a receptionist account (ADMIN only)."""
        ensure_allowed(Operation.STAFF_MANAGE, caller)
        await self._get_receptionist(user_id, caller)

        await self.db.execute(delete(users).where(users.c.id == user_id))
        await self.db.commit()

        logger.info("staff_deleted", user_id=str(user_id))
