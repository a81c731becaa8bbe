"""Clinic schemas for request/response validation."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class ClinicUpdate(BaseModel):
    """Schema for updating clinic details."""

    name: str = Field(..., min_length=1, max_length=255)
    address: str = Field(..., min_length=1, max_length=500)
    phone: str = Field(..., min_length=1, max_length=30)


class ClinicCounts(BaseModel):
    """Related row counts for a clinic."""

    users: int
    services: int
    appointments: int


class ClinicResponse(BaseModel):
    """Clinic response schema."""

    id: UUID
    name: str
    address: str
    phone: str
    created_at: datetime
    updated_at: datetime
    counts: ClinicCounts | None = None

    model_config = {"from_attributes": True}
