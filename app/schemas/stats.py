"""Dashboard statistics schemas."""

from pydantic import BaseModel


class DashboardStatsResponse(BaseModel):
    """Clinic dashboard counts."""

    patients: int
    doctors: int
    appointments: int
    invoices: int
