"""Consultation and prescription schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class ConsultationCreate(BaseModel):
    """Schema for recording a consultation for an appointment."""

    appointment_id: UUID
    diagnosis: str = Field(..., min_length=1)
    treatment: str = Field(..., min_length=1)


class ConsultationUpdate(BaseModel):
    """Schema for updating diagnosis and treatment."""

    diagnosis: str | None = Field(None, min_length=1)
    treatment: str | None = Field(None, min_length=1)


class PrescriptionCreate(BaseModel):
    """Schema for issuing a prescription."""

    consultation_id: UUID
    medications: str = Field(..., min_length=1)
    instructions: str | None = None


class PrescriptionResponse(BaseModel):
    """Prescription response schema."""

    id: UUID
    consultation_id: UUID
    medications: str
    instructions: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ConsultationResponse(BaseModel):
    """Consultation response schema."""

    id: UUID
    appointment_id: UUID
    diagnosis: str
    treatment: str
    prescriptions: list[PrescriptionResponse] = []
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
