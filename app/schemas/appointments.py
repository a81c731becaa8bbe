"""Appointment schemas for request/response validation."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class AppointmentCreate(BaseModel):
    """Schema for creating a new appointment."""

    patient_id: UUID
    doctor_id: UUID
    scheduled_at: datetime
    notes: str | None = Field(None, max_length=1000)


class AppointmentUpdate(BaseModel):
    """Schema for updating an existing appointment.

    Status is validated against the configured status set by the service.
    """

    scheduled_at: datetime | None = None
    status: str | None = Field(None, min_length=1, max_length=50)
    notes: str | None = Field(None, max_length=1000)


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: UUID
    patient_id: UUID
    doctor_id: UUID
    clinic_id: UUID
    scheduled_at: datetime
    status: str
    notes: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering."""

    patient_id: UUID | None = None
    doctor_id: UUID | None = None
    # doctor_id=current on the query string
    current_doctor: bool = False
    status: str | None = None
