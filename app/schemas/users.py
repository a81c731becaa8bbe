"""User and staff schemas for request/response validation."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class UserRole(str, Enum):
    """User role enumeration."""

    ADMIN = "ADMIN"
    DOCTOR = "DOCTOR"
    RECEPTIONIST = "RECEPTIONIST"
    PATIENT = "PATIENT"


class UserResponse(BaseModel):
    """User schema for API responses; never exposes the password hash."""

    id: UUID
    email: EmailStr
    role: UserRole
    clinic_id: UUID | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime
    last_login_at: datetime | None = None

    model_config = {"from_attributes": True}


class StaffCreate(BaseModel):
    """Schema for creating a receptionist account."""

    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)


class StaffUpdate(BaseModel):
    """Schema for updating a receptionist account."""

    email: EmailStr | None = None
    password: str | None = Field(None, min_length=6, max_length=128)
