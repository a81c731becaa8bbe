"""Patient schemas for request/response validation."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from app.schemas.users import UserResponse


class PatientBase(BaseModel):
    """Base patient schema with common fields."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    date_of_birth: date
    phone: str | None = Field(None, max_length=30)
    address: str | None = Field(None, max_length=500)


class PatientCreate(PatientBase):
    """Schema for registering a patient at the clinic."""

    email: EmailStr
    # Optional: patients created at the front desk may set a password later
    password: str | None = Field(None, min_length=6, max_length=128)


class PatientUpdate(BaseModel):
    """Schema for updating patient details."""

    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    date_of_birth: date | None = None
    phone: str | None = Field(None, max_length=30)
    address: str | None = Field(None, max_length=500)


class PatientResponse(PatientBase):
    """Schema for patient response."""

    id: UUID
    user_id: UUID
    user: UserResponse | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
