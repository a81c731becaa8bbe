"""Prescription service."""

from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ForbiddenException, NotFoundException
from app.core.permissions import Operation, Resource, ensure_allowed
from app.core.tenancy import row_in_clinic, scoped
from app.models.appointments import appointments
from app.models.consultations import consultations, prescriptions
from app.schemas.auth import Caller
from app.schemas.consultations import PrescriptionCreate, PrescriptionResponse
from app.services.consultation_service import ConsultationService, appointments_of

logger = structlog.get_logger(__name__)


class PrescriptionService:
    """Service for issuing and reading prescriptions."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def list_prescriptions(
        self, caller: Caller, consultation_id: UUID | None = None
    ) -> list[PrescriptionResponse]:
        """List prescriptions; doctors and patients only see their own."""
        ensure_allowed(Operation.PRESCRIPTION_VIEW, caller)

        conditions: list[Any] = []
        if consultation_id:
            conditions.append(prescriptions.c.consultation_id == consultation_id)
        own = appointments_of(caller)
        if own is not None:
            conditions.append(
                prescriptions.c.consultation_id.in_(
                    select(consultations.c.id).where(consultations.c.appointment_id.in_(own))
                )
            )

        query = (
            select(prescriptions)
            .where(*scoped(conditions, prescriptions, caller.clinic_id))
            .order_by(prescriptions.c.created_at.desc())
        )
        result = await self.db.execute(query)
        return [PrescriptionResponse.model_validate(dict(row)) for row in result.mappings()]

    async def get_prescription(self, prescription_id: UUID, caller: Caller) -> PrescriptionResponse:
        """
        Get a prescription by ID.

        Raises:
            NotFoundException: If the prescription does not exist
            ForbiddenException: If it is outside the caller's clinic, or the
                caller is not its patient or prescribing doctor
        """
        query = (
            select(prescriptions, appointments.c.patient_id, appointments.c.doctor_id)
            .select_from(
                prescriptions.join(
                    consultations, prescriptions.c.consultation_id == consultations.c.id
                ).join(appointments, consultations.c.appointment_id == appointments.c.id)
            )
            .where(prescriptions.c.id == prescription_id)
        )
        result = await self.db.execute(query)
        row = result.mappings().first()
        if not row:
            raise NotFoundException("Prescription not found")

        if not await row_in_clinic(self.db, prescriptions, prescription_id, caller.clinic_id):
            raise ForbiddenException("Unauthorized access")

        ensure_allowed(
            Operation.PRESCRIPTION_VIEW,
            caller,
            Resource.of(row["patient_id"], row["doctor_id"]),
            "Unauthorized access",
        )
        return PrescriptionResponse.model_validate({c.name: row[c.name] for c in prescriptions.columns})

    async def create_prescription(
        self, data: PrescriptionCreate, caller: Caller
    ) -> PrescriptionResponse:
        """
        Issue a prescription for one of the calling doctor's consultations.

        Raises:
            ForbiddenException: If the caller did not hold the consultation
            NotFoundException: If the consultation does not exist
        """
        ensure_allowed(Operation.PRESCRIPTION_CREATE, caller)
        _, resource = await ConsultationService(self.db).load(data.consultation_id, caller)
        ensure_allowed(
            Operation.PRESCRIPTION_CREATE,
            caller,
            resource,
            "Unauthorized access to this consultation",
        )

        result = await self.db.execute(
            insert(prescriptions).values(**data.model_dump()).returning(prescriptions)
        )
        row = dict(result.mappings().one())
        await self.db.commit()

        logger.info(
            "prescription_created",
            prescription_id=str(row["id"]),
            consultation_id=str(data.consultation_id),
        )
        return PrescriptionResponse.model_validate(row)
