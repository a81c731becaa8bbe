"""Appointment service for business logic."""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import BadRequestException, ForbiddenException, NotFoundException
from app.core.permissions import Operation, Resource, ensure_allowed
from app.core.tenancy import row_in_clinic, scoped
from app.models.appointments import appointments
from app.models.doctors import doctors
from app.models.patients import patients
from app.models.users import users
from app.schemas.appointments import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentResponse,
    AppointmentUpdate,
)
from app.schemas.auth import Caller
from app.schemas.users import UserRole

logger = structlog.get_logger(__name__)

INITIAL_STATUS = "SCHEDULED"
COMPLETED_STATUS = "COMPLETED"


def normalize_status(status: str) -> str:
    """
    Validate an appointment status against the configured set.

    Raises:
        BadRequestException: If the status is not configured
    """
    value = status.strip().upper()
    if value not in settings.appointment_statuses:
        allowed = ", ".join(settings.appointment_statuses)
        raise BadRequestException(f"Invalid appointment status '{status}'. Allowed: {allowed}")
    return value


class AppointmentService:
    """Service for managing appointments."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def get_row(self, appointment_id: UUID, caller: Caller) -> dict:
        """
        Load an appointment inside the caller's clinic.

        Raises:
            NotFoundException: If the appointment does not exist
            ForbiddenException: If it belongs to another clinic
        """
        result = await self.db.execute(
            select(appointments).where(appointments.c.id == appointment_id)
        )
        row = result.mappings().first()
        if not row:
            raise NotFoundException("Appointment not found")

        if not await row_in_clinic(self.db, appointments, appointment_id, caller.clinic_id):
            raise ForbiddenException("Unauthorized access to this appointment")
        return dict(row)

    async def list_appointments(
        self, caller: Caller, filters: AppointmentFilters
    ) -> list[AppointmentResponse]:
        """
        List appointments visible to the caller.

        Patients always get their own appointments only. Doctors get their own
        unless they filter by another doctor explicitly.

        Args:
            caller: Resolved caller
            filters: Patient, doctor and status filters

        Returns:
            Appointments ordered by scheduled time
        """
        ensure_allowed(Operation.APPOINTMENT_VIEW, caller)

        conditions: list[Any] = []
        if caller.role == UserRole.PATIENT:
            if caller.patient_id is None:
                return []
            conditions.append(appointments.c.patient_id == caller.patient_id)
        elif filters.patient_id:
            conditions.append(appointments.c.patient_id == filters.patient_id)

        if filters.doctor_id and not filters.current_doctor:
            conditions.append(appointments.c.doctor_id == filters.doctor_id)
        elif caller.role == UserRole.DOCTOR and caller.doctor_id is not None:
            conditions.append(appointments.c.doctor_id == caller.doctor_id)

        if filters.status:
            conditions.append(appointments.c.status == filters.status.strip().upper())

        query = (
            select(appointments)
            .where(*scoped(conditions, appointments, caller.clinic_id))
            .order_by(appointments.c.scheduled_at.asc())
        )
        result = await self.db.execute(query)
        return [AppointmentResponse.model_validate(dict(row)) for row in result.mappings()]

    async def get_appointment(self, appointment_id: UUID, caller: Caller) -> AppointmentResponse:
        """
        Get appointment by ID.

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If the caller may not see it
        """
        row = await self.get_row(appointment_id, caller)
        ensure_allowed(
            Operation.APPOINTMENT_VIEW,
            caller,
            Resource.of(row["patient_id"], row["doctor_id"]),
            "Unauthorized access to this appointment",
        )
        return AppointmentResponse.model_validate(row)

    async def _owner_clinic(self, table, profile_id: UUID) -> tuple[bool, UUID | None]:
        query = (
            select(users.c.clinic_id)
            .select_from(table.join(users, table.c.user_id == users.c.id))
            .where(table.c.id == profile_id)
        )
        result = await self.db.execute(query)
        row = result.first()
        if row is None:
            return False, None
        return True, row.clinic_id

    async def create_appointment(
        self, data: AppointmentCreate, caller: Caller
    ) -> AppointmentResponse:
        """
        Book an appointment. It always starts as SCHEDULED.

        The clinic is the caller's, falling back to the patient's or doctor's.

        Raises:
            ForbiddenException: If a patient books for someone else
            NotFoundException: If the patient or doctor does not exist
            BadRequestException: If no clinic can be determined
        """
        ensure_allowed(
            Operation.APPOINTMENT_CREATE,
            caller,
            Resource.of(data.patient_id) if caller.role == UserRole.PATIENT else None,
            "Patients can only book their own appointments",
        )

        patient_exists, patient_clinic = await self._owner_clinic(patients, data.patient_id)
        doctor_exists, doctor_clinic = await self._owner_clinic(doctors, data.doctor_id)
        if not patient_exists or not doctor_exists:
            raise NotFoundException("Patient or doctor not found")

        if caller.clinic_id is not None and not (
            await row_in_clinic(self.db, patients, data.patient_id, caller.clinic_id)
            and await row_in_clinic(self.db, doctors, data.doctor_id, caller.clinic_id)
        ):
            raise ForbiddenException("Patient or doctor belongs to another clinic")

        clinic_id = caller.clinic_id or patient_clinic or doctor_clinic
        if clinic_id is None:
            raise BadRequestException(
                "Clinic ID is required. Patient or doctor must be associated with a clinic."
            )

        result = await self.db.execute(
            insert(appointments)
            .values(
                patient_id=data.patient_id,
                doctor_id=data.doctor_id,
                clinic_id=clinic_id,
                scheduled_at=data.scheduled_at,
                status=INITIAL_STATUS,
                notes=data.notes,
            )
            .returning(appointments)
        )
        row = dict(result.mappings().one())
        await self.db.commit()

        logger.info(
            "appointment_created",
            appointment_id=str(row["id"]),
            clinic_id=str(clinic_id),
            created_by=caller.role.value,
        )
        return AppointmentResponse.model_validate(row)

    async def update_appointment(
        self,
        appointment_id: UUID,
        data: AppointmentUpdate,
        caller: Caller,
    ) -> AppointmentResponse:
        """
        Update an existing appointment.

        Patients may move the schedule and edit notes of their own
        appointments; only staff may change the status.

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If the caller may not make this change
            BadRequestException: If the status is not configured
        """
        row = await self.get_row(appointment_id, caller)
        ensure_allowed(
            Operation.APPOINTMENT_UPDATE,
            caller,
            Resource.of(row["patient_id"], row["doctor_id"]),
            "Unauthorized access to this appointment",
        )

        changes = data.model_dump(exclude_unset=True)
        values: dict[str, Any] = {}
        if changes.get("scheduled_at") is not None:
            values["scheduled_at"] = changes["scheduled_at"]
        if "notes" in changes:
            values["notes"] = changes["notes"]
        if changes.get("status") is not None:
            ensure_allowed(
                Operation.APPOINTMENT_CHANGE_STATUS,
                caller,
                message="Patients cannot change the appointment status",
            )
            values["status"] = normalize_status(changes["status"])

        if not values:
            return AppointmentResponse.model_validate(row)

        values["updated_at"] = datetime.now(UTC)
        result = await self.db.execute(
            update(appointments)
            .where(appointments.c.id == appointment_id)
            .values(**values)
            .returning(appointments)
        )
        updated = dict(result.mappings().one())
        await self.db.commit()

        if "status" in values and values["status"] != row["status"]:
            logger.info(
                "appointment_status_changed",
                appointment_id=str(appointment_id),
                old_status=row["status"],
                new_status=values["status"],
            )
        return AppointmentResponse.model_validate(updated)

    async def mark_completed(self, appointment_id: UUID) -> None:
        """Move an appointment to COMPLETED when that status is configured; the caller commits."""
        if COMPLETED_STATUS not in settings.appointment_statuses:
            return

        await self.db.execute(
            update(appointments)
            .where(appointments.c.id == appointment_id)
            .values(status=COMPLETED_STATUS, updated_at=datetime.now(UTC))
        )

    async def delete_appointment(self, appointment_id: UUID, caller: Caller) -> None:
        """
        Delete an appointment.

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If the caller may not delete it
        """
        row = await self.get_row(appointment_id, caller)
        ensure_allowed(
            Operation.APPOINTMENT_DELETE,
            caller,
            Resource.of(row["patient_id"], row["doctor_id"]),
            "Unauthorized access to this appointment",
        )

        await self.db.execute(delete(appointments).where(appointments.c.id == appointment_id))
        await self.db.commit()
        logger.info("appointment_deleted", appointment_id=str(appointment_id))
