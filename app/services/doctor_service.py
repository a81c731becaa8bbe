"""Doctor service for business logic."""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import insert, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ForbiddenException, NotFoundException
from app.core.permissions import Operation, ensure_allowed
from app.core.tenancy import row_in_clinic, scoped
from app.models.doctors import doctors
from app.models.users import users
from app.schemas.auth import Caller
from app.schemas.doctors import DoctorCreate, DoctorResponse, DoctorUpdate
from app.schemas.users import UserRole
from app.services.user_service import UserService

logger = structlog.get_logger(__name__)


class DoctorService:
    """Service for managing doctor accounts and profiles."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db
        self.users = UserService(db)

    async def _to_responses(self, rows: list[Any]) -> list[DoctorResponse]:
        user_map = await self.users.get_users_by_ids(row["user_id"] for row in rows)
        return [
            DoctorResponse.model_validate({**row, "user": user_map.get(row["user_id"])})
            for row in rows
        ]

    async def _get_row(self, doctor_id: UUID) -> dict:
        result = await self.db.execute(select(doctors).where(doctors.c.id == doctor_id))
        row = result.mappings().first()
        if not row:
            raise NotFoundException("Doctor not found")
        return dict(row)

    async def list_doctors(self, caller: Caller, search: str | None = None) -> list[DoctorResponse]:
        """
        List doctors of the caller's clinic.

        Args:
            caller: Resolved caller
            search: Optional match on specialization, license number or e-mail

        Returns:
            Doctors, newest first
        """
        ensure_allowed(Operation.DOCTOR_VIEW, caller)

        conditions = []
        if search:
            pattern = f"%{search}%"
            conditions.append(
                or_(
                    doctors.c.specialization.ilike(pattern),
                    doctors.c.license_number.ilike(pattern),
                    doctors.c.user_id.in_(
                        select(users.c.id).where(users.c.email.ilike(pattern))
                    ),
                )
            )

        query = (
            select(doctors)
            .where(*scoped(conditions, doctors, caller.clinic_id))
            .order_by(doctors.c.created_at.desc())
        )
        result = await self.db.execute(query)
        return await self._to_responses([dict(row) for row in result.mappings()])

    async def get_doctor(self, doctor_id: UUID, caller: Caller) -> DoctorResponse:
        """
        Get a doctor by ID.

        Raises:
            NotFoundException: If the doctor does not exist
            ForbiddenException: If the doctor belongs to another clinic
        """
        ensure_allowed(Operation.DOCTOR_VIEW, caller)
        row = await self._get_row(doctor_id)
        if not await row_in_clinic(self.db, doctors, doctor_id, caller.clinic_id):
            raise ForbiddenException("Unauthorized access to this doctor")
        return (await self._to_responses([row]))[0]

    async def get_own_profile(self, caller: Caller) -> DoctorResponse:
        """Get the calling doctor's own profile."""
        ensure_allowed(Operation.DOCTOR_VIEW_SELF, caller)
        if caller.doctor_id is None:
            raise NotFoundException("Doctor profile not found")
        return (await self._to_responses([await self._get_row(caller.doctor_id)]))[0]

    async def create_doctor(self, data: DoctorCreate, caller: Caller) -> DoctorResponse:
        """
        Create a doctor account and profile at the caller's clinic.

        Raises:
            ForbiddenException: If the caller is not front-desk staff
            BadRequestException: If the e-mail is already in use
        """
        ensure_allowed(Operation.DOCTOR_CREATE, caller)

        user = await self.users.create_user(
            data.email, UserRole.DOCTOR, caller.clinic_id, password=data.password
        )
        result = await self.db.execute(
            insert(doctors)
            .values(
                user_id=user["id"],
                specialization=data.specialization,
                license_number=data.license_number,
            )
            .returning(doctors)
        )
        row = dict(result.mappings().one())
        await self.db.commit()

        logger.info("doctor_created", doctor_id=str(row["id"]), clinic_id=str(caller.clinic_id))
        return (await self._to_responses([row]))[0]

    async def update_doctor(
        self, doctor_id: UUID, data: DoctorUpdate, caller: Caller
    ) -> DoctorResponse:
        """
        Update a doctor's profile and account credentials.

        Raises:
            ForbiddenException: If the caller may not edit this doctor
            NotFoundException: If the doctor does not exist
            BadRequestException: If the new e-mail is already in use
        """
        ensure_allowed(Operation.DOCTOR_UPDATE, caller)
        row = await self._get_row(doctor_id)
        if not await row_in_clinic(self.db, doctors, doctor_id, caller.clinic_id):
            raise ForbiddenException("Unauthorized access to this doctor")

        await self.users.update_credentials(row["user_id"], email=data.email, password=data.password)

        values = {
            k: v
            for k, v in data.model_dump(
                exclude_unset=True, include={"specialization", "license_number"}
            ).items()
            if v is not None
        }
        if values:
            values["updated_at"] = datetime.now(UTC)
            result = await self.db.execute(
                update(doctors).where(doctors.c.id == doctor_id).values(**values).returning(doctors)
            )
            row = dict(result.mappings().one())
        await self.db.commit()

        return (await self._to_responses([row]))[0]
