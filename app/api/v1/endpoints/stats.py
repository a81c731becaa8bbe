"""Dashboard statistics endpoints."""

from fastapi import APIRouter, status

from app.dependencies import CurrentCaller, DatabaseSession
from app.schemas.stats import DashboardStatsResponse
from app.services.stats_service import StatsService

router = APIRouter()


@router.get(
    "",
    response_model=DashboardStatsResponse,
    status_code=status.HTTP_200_OK,
    summary="Dashboard counts",
)
async def get_stats(caller: CurrentCaller, db: DatabaseSession) -> DashboardStatsResponse:
    """Counts of patients, doctors, appointments and invoices in the caller's clinic."""
    return await StatsService(db).get_dashboard_stats(caller)
