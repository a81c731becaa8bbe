"""Dashboard statistics service."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.permissions import Operation, ensure_allowed
from app.core.tenancy import scoped
from app.models.appointments import appointments
from app.models.invoices import invoices
from app.models.patients import patients
from app.models.users import users
from app.schemas.auth import Caller
from app.schemas.stats import DashboardStatsResponse
from app.schemas.users import UserRole


class StatsService:
    """Read-only counts for the clinic dashboard."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def _count(self, table, conditions: list, clinic_id) -> int:
        query = (
            select(func.count())
            .select_from(table)
            .where(*scoped(conditions, table, clinic_id))
        )
        result = await self.db.execute(query)
        return result.scalar() or 0

    async def get_dashboard_stats(self, caller: Caller) -> DashboardStatsResponse:
        """
        Count patients, doctors, appointments and invoices in the caller's clinic.

        Doctors are counted as users with the DOCTOR role. Invoices are
        counted for every patient linked to the clinic through their account
        or through an appointment.
        """
        ensure_allowed(Operation.STATS_VIEW, caller)
        clinic_id = caller.clinic_id

        return DashboardStatsResponse(
            patients=await self._count(patients, [], clinic_id),
            doctors=await self._count(users, [users.c.role == UserRole.DOCTOR.value], clinic_id),
            appointments=await self._count(appointments, [], clinic_id),
            invoices=await self._count(invoices, [], clinic_id),
        )
