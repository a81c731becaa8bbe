"""Consultation service: the record a doctor writes for an appointment."""

from collections import defaultdict
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import BadRequestException, ForbiddenException, NotFoundException
from app.core.permissions import Operation, Resource, ensure_allowed
from app.core.tenancy import row_in_clinic, scoped
from app.models.appointments import appointments
from app.models.consultations import consultations, prescriptions
from app.schemas.auth import Caller
from app.schemas.consultations import (
    ConsultationCreate,
    ConsultationResponse,
    ConsultationUpdate,
    PrescriptionResponse,
)
from app.schemas.users import UserRole
from app.services.appointment_service import AppointmentService
from app.services.invoice_service import InvoiceService
from app.services.service_catalog_service import ServiceCatalogService

logger = structlog.get_logger(__name__)


def appointments_of(caller: Caller):
    """Appointment ids belonging to the calling doctor or patient, None for staff."""
    if caller.role == UserRole.DOCTOR:
        return select(appointments.c.id).where(appointments.c.doctor_id == caller.doctor_id)
    if caller.role == UserRole.PATIENT:
        return select(appointments.c.id).where(appointments.c.patient_id == caller.patient_id)
    return None


class ConsultationService:
    """Service for managing consultations."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def _to_responses(self, rows: list[dict]) -> list[ConsultationResponse]:
        ids = [row["id"] for row in rows]
        by_consultation: dict[UUID, list[PrescriptionResponse]] = defaultdict(list)
        if ids:
            result = await self.db.execute(
                select(prescriptions)
                .where(prescriptions.c.consultation_id.in_(ids))
                .order_by(prescriptions.c.created_at)
            )
            for p in result.mappings():
                by_consultation[p["consultation_id"]].append(
                    PrescriptionResponse.model_validate(dict(p))
                )

        return [
            ConsultationResponse.model_validate({**row, "prescriptions": by_consultation[row["id"]]})
            for row in rows
        ]

    async def load(self, consultation_id: UUID, caller: Caller) -> tuple[dict, Resource]:
        """
        Load a consultation inside the caller's clinic with its ownership.

        Raises:
            NotFoundException: If the consultation does not exist
            ForbiddenException: If it belongs to another clinic
        """
        query = (
            select(consultations, appointments.c.patient_id, appointments.c.doctor_id)
            .select_from(
                consultations.join(appointments, consultations.c.appointment_id == appointments.c.id)
            )
            .where(consultations.c.id == consultation_id)
        )
        result = await self.db.execute(query)
        row = result.mappings().first()
        if not row:
            raise NotFoundException("Consultation not found")

        if not await row_in_clinic(self.db, consultations, consultation_id, caller.clinic_id):
            raise ForbiddenException("Unauthorized access to this consultation")

        record = {c.name: row[c.name] for c in consultations.columns}
        return record, Resource.of(row["patient_id"], row["doctor_id"])

    async def list_consultations(
        self, caller: Caller, appointment_id: UUID | None = None
    ) -> list[ConsultationResponse]:
        """List consultations; doctors and patients only see their own."""
        ensure_allowed(Operation.CONSULTATION_VIEW, caller)

        conditions: list[Any] = []
        if appointment_id:
            conditions.append(consultations.c.appointment_id == appointment_id)
        own = appointments_of(caller)
        if own is not None:
            conditions.append(consultations.c.appointment_id.in_(own))

        query = (
            select(consultations)
            .where(*scoped(conditions, consultations, caller.clinic_id))
            .order_by(consultations.c.created_at.desc())
        )
        result = await self.db.execute(query)
        return await self._to_responses([dict(row) for row in result.mappings()])

    async def get_consultation(self, consultation_id: UUID, caller: Caller) -> ConsultationResponse:
        """Get a consultation with its prescriptions."""
        record, resource = await self.load(consultation_id, caller)
        ensure_allowed(
            Operation.CONSULTATION_VIEW, caller, resource, "Unauthorized access to this consultation"
        )
        return (await self._to_responses([record]))[0]

    async def create_consultation(
        self, data: ConsultationCreate, caller: Caller
    ) -> ConsultationResponse:
        """
        Record the consultation for an appointment.

        The appointment is marked COMPLETED and a PENDING invoice is raised
        for the patient. A failure to raise the invoice is logged and does
        not undo the consultation.

        Raises:
            ForbiddenException: If the caller is not the appointment's doctor
            NotFoundException: If the appointment does not exist
            BadRequestException: If the appointment already has a consultation
        """
        ensure_allowed(Operation.CONSULTATION_CREATE, caller)

        appointment_service = AppointmentService(self.db)
        appointment = await appointment_service.get_row(data.appointment_id, caller)
        ensure_allowed(
            Operation.CONSULTATION_CREATE,
            caller,
            Resource.of(appointment["patient_id"], appointment["doctor_id"]),
            "Only the assigned doctor can record this consultation",
        )

        existing = await self.db.execute(
            select(consultations.c.id).where(
                consultations.c.appointment_id == data.appointment_id
            )
        )
        if existing.first() is not None:
            raise BadRequestException("Appointment already has a consultation")

        result = await self.db.execute(
            insert(consultations).values(**data.model_dump()).returning(consultations)
        )
        record = dict(result.mappings().one())
        await appointment_service.mark_completed(data.appointment_id)
        await self.db.commit()

        logger.info(
            "consultation_created",
            consultation_id=str(record["id"]),
            appointment_id=str(data.appointment_id),
        )

        await self._raise_consultation_invoice(appointment)
        return (await self._to_responses([record]))[0]

    async def _raise_consultation_invoice(self, appointment: dict) -> None:
        try:
            price = await ServiceCatalogService(self.db).current_consultation_price(
                appointment["clinic_id"]
            )
            await InvoiceService(self.db).raise_invoice(
                appointment["patient_id"], price or settings.default_consultation_fee
            )
        except Exception as e:
            await self.db.rollback()
            logger.error(
                "consultation_invoice_failed",
                appointment_id=str(appointment["id"]),
                error=str(e),
            )

    async def update_consultation(
        self, consultation_id: UUID, data: ConsultationUpdate, caller: Caller
    ) -> ConsultationResponse:
        """
        Update diagnosis and treatment.

        Raises:
            ForbiddenException: If the caller is not the appointment's doctor
            NotFoundException: If the consultation does not exist
        """
        ensure_allowed(Operation.CONSULTATION_UPDATE, caller)
        record, resource = await self.load(consultation_id, caller)
        ensure_allowed(
            Operation.CONSULTATION_UPDATE,
            caller,
            resource,
            "Only the assigned doctor can update this consultation",
        )

        values = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
        if values:
            values["updated_at"] = datetime.now(UTC)
            result = await self.db.execute(
                update(consultations)
                .where(consultations.c.id == consultation_id)
                .values(**values)
                .returning(consultations)
            )
            record = dict(result.mappings().one())
            await self.db.commit()

        return (await self._to_responses([record]))[0]
