"""Clinic settings service."""

from datetime import UTC, datetime

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundException
from app.core.permissions import Operation, ensure_allowed
from app.models.appointments import appointments
from app.models.clinics import clinics
from app.models.services import services
from app.models.users import users
from app.schemas.auth import Caller
from app.schemas.clinics import ClinicCounts, ClinicResponse, ClinicUpdate

logger = structlog.get_logger(__name__)


class ClinicService:
    """Service for the caller's own clinic."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def _count(self, table, clinic_id) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(table).where(table.c.clinic_id == clinic_id)
        )
        return result.scalar() or 0

    async def get_clinic(self, caller: Caller) -> ClinicResponse:
        """
        Get the caller's clinic with user, service and appointment counts.

        Raises:
            NotFoundException: If the caller has no clinic
        """
        ensure_allowed(Operation.CLINIC_VIEW, caller)
        if caller.clinic_id is None:
            raise NotFoundException("No clinic associated with this user")

        result = await self.db.execute(select(clinics).where(clinics.c.id == caller.clinic_id))
        row = result.mappings().first()
        if not row:
            raise NotFoundException("Clinic not found")

        counts = ClinicCounts(
            users=await self._count(users, caller.clinic_id),
            services=await self._count(services, caller.clinic_id),
            appointments=await self._count(appointments, caller.clinic_id),
        )
        return ClinicResponse.model_validate({**row, "counts": counts})

    async def update_clinic(self, data: ClinicUpdate, caller: Caller) -> ClinicResponse:
        """Update the caller's clinic details (ADMIN only)."""
        ensure_allowed(Operation.CLINIC_UPDATE, caller)
        if caller.clinic_id is None:
            raise NotFoundException("No clinic associated with this user")

        await self.db.execute(
            update(clinics)
            .where(clinics.c.id == caller.clinic_id)
            .values(**data.model_dump(), updated_at=datetime.now(UTC))
        )
        await self.db.commit()

        logger.info("clinic_updated", clinic_id=str(caller.clinic_id))
        return await self.get_clinic(caller)
