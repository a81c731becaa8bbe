"""Patient service for business logic."""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import insert, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestException, ForbiddenException, NotFoundException
from app.core.permissions import Operation, Resource, ensure_allowed
from app.core.tenancy import row_in_clinic, scoped
from app.models.appointments import appointments
from app.models.patients import patients
from app.models.users import users
from app.schemas.auth import Caller
from app.schemas.patients import PatientCreate, PatientResponse, PatientUpdate
from app.schemas.users import UserRole
from app.services.user_service import UserService

logger = structlog.get_logger(__name__)


def search_condition(search: str):
    """Case-insensitive substring match on name, phone and account e-mail."""
    pattern = f"%{search}%"
    return or_(
        patients.c.first_name.ilike(pattern),
        patients.c.last_name.ilike(pattern),
        patients.c.phone.ilike(pattern),
        patients.c.user_id.in_(select(users.c.id).where(users.c.email.ilike(pattern))),
    )


class PatientService:
    """Service for managing patient profiles."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db
        self.users = UserService(db)

    async def _to_responses(self, rows: list[Any]) -> list[PatientResponse]:
        user_map = await self.users.get_users_by_ids(row["user_id"] for row in rows)
        return [
            PatientResponse.model_validate({**row, "user": user_map.get(row["user_id"])})
            for row in rows
        ]

    async def _get_row(self, patient_id: UUID) -> dict:
        result = await self.db.execute(select(patients).where(patients.c.id == patient_id))
        row = result.mappings().first()
        if not row:
            raise NotFoundException("Patient not found")
        return dict(row)

    async def _treating_doctor_ids(self, patient_id: UUID) -> frozenset[UUID]:
        result = await self.db.execute(
            select(appointments.c.doctor_id).where(appointments.c.patient_id == patient_id)
        )
        return frozenset(result.scalars().all())

    async def _check_clinic(self, patient_id: UUID, caller: Caller) -> None:
        if not await row_in_clinic(self.db, patients, patient_id, caller.clinic_id):
            raise ForbiddenException("Unauthorized access to this patient")

    async def list_patients(self, caller: Caller, search: str | None = None) -> list[PatientResponse]:
        """
        List patients visible to the caller.

        Patients only see themselves and doctors only see patients they have
        appointments with; everything is limited to the caller's clinic.

        Args:
            caller: Resolved caller
            search: Optional free-text filter

        Returns:
            Matching patients
        """
        ensure_allowed(Operation.PATIENT_VIEW, caller)

        conditions = []
        if search:
            conditions.append(search_condition(search))

        if caller.role == UserRole.PATIENT:
            conditions.append(patients.c.id == caller.patient_id)
        elif caller.role == UserRole.DOCTOR:
            conditions.append(
                patients.c.id.in_(
                    select(appointments.c.patient_id).where(
                        appointments.c.doctor_id == caller.doctor_id
                    )
                )
            )

        query = (
            select(patients)
            .where(*scoped(conditions, patients, caller.clinic_id))
            .order_by(patients.c.last_name, patients.c.first_name)
        )
        result = await self.db.execute(query)
        return await self._to_responses([dict(row) for row in result.mappings()])

    async def get_patient(self, patient_id: UUID, caller: Caller) -> PatientResponse:
        """
        Get a patient by ID.

        Raises:
            NotFoundException: If the patient does not exist
            ForbiddenException: If the patient is outside the caller's reach
        """
        row = await self._get_row(patient_id)
        await self._check_clinic(patient_id, caller)

        resource = Resource(
            patient_id=patient_id,
            doctor_ids=await self._treating_doctor_ids(patient_id),
        )
        ensure_allowed(
            Operation.PATIENT_VIEW, caller, resource, "Unauthorized access to this patient"
        )

        return (await self._to_responses([row]))[0]

    async def get_own_profile(self, caller: Caller) -> PatientResponse:
        """Get the calling patient's own profile."""
        ensure_allowed(Operation.PATIENT_VIEW_SELF, caller)
        if caller.patient_id is None:
            raise NotFoundException("Patient not found")
        return (await self._to_responses([await self._get_row(caller.patient_id)]))[0]

    async def _resolve_account(self, data: PatientCreate, caller: Caller) -> UUID:
        existing = await self.users.get_user_by_email(data.email)
        if existing is None:
            user = await self.users.create_user(
                data.email, UserRole.PATIENT, caller.clinic_id, password=data.password
            )
            return user["id"]

        # Only a bare patient account of the same clinic can be linked
        has_profile = await self.db.execute(
            select(patients.c.id).where(patients.c.user_id == existing["id"])
        )
        if (
            existing["role"] != UserRole.PATIENT.value
            or existing["clinic_id"] != caller.clinic_id
            or has_profile.first() is not None
        ):
            raise BadRequestException("User with this email already exists")
        return existing["id"]

    async def create_patient(self, data: PatientCreate, caller: Caller) -> PatientResponse:
        """
        Register a patient at the caller's clinic.

        Raises:
            ForbiddenException: If the caller is not front-desk staff
            BadRequestException: If the e-mail belongs to another account
        """
        ensure_allowed(Operation.PATIENT_CREATE, caller)

        user_id = await self._resolve_account(data, caller)
        result = await self.db.execute(
            insert(patients)
            .values(user_id=user_id, **data.model_dump(exclude={"email", "password"}))
            .returning(patients)
        )
        row = dict(result.mappings().one())
        await self.db.commit()

        logger.info("patient_created", patient_id=str(row["id"]), clinic_id=str(caller.clinic_id))
        return (await self._to_responses([row]))[0]

    async def update_patient(
        self, patient_id: UUID, data: PatientUpdate, caller: Caller
    ) -> PatientResponse:
        """
        Update patient details.

        Raises:
            ForbiddenException: If the caller may not edit this patient
            NotFoundException: If the patient does not exist
        """
        ensure_allowed(Operation.PATIENT_UPDATE, caller)
        await self._get_row(patient_id)
        await self._check_clinic(patient_id, caller)

        values = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
        if not values:
            return await self.get_patient(patient_id, caller)

        values["updated_at"] = datetime.now(UTC)
        result = await self.db.execute(
            update(patients).where(patients.c.id == patient_id).values(**values).returning(patients)
        )
        row = dict(result.mappings().one())
        await self.db.commit()

        return (await self._to_responses([row]))[0]
