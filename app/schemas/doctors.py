"""Doctor schemas for request/response validation."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from app.schemas.users import UserResponse


class DoctorCreate(BaseModel):
    """Schema for creating a doctor account and profile."""

    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    specialization: str = Field(..., min_length=1, max_length=255)
    license_number: str | None = Field(None, max_length=100)


class DoctorUpdate(BaseModel):
    """Schema for updating a doctor."""

    specialization: str | None = Field(None, min_length=1, max_length=255)
    license_number: str | None = Field(None, max_length=100)
    email: EmailStr | None = None
    password: str | None = Field(None, min_length=6, max_length=128)


class DoctorResponse(BaseModel):
    """Doctor response schema."""

    id: UUID
    user_id: UUID
    specialization: str
    license_number: str | None = None
    user: UserResponse | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
