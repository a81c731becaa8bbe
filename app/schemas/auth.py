"""Authentication schemas."""

from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from app.schemas.users import UserRole


class RegisterRequest(BaseModel):
    """Clinic registration request: creates the clinic and its first admin."""

    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    clinic_name: str = Field(..., min_length=1, max_length=255)
    clinic_address: str | None = Field(None, max_length=500)
    clinic_phone: str | None = Field(None, max_length=30)


class LoginRequest(BaseModel):
    """E-mail and password login request."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class Token(BaseModel):
    """JWT token response schema."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class TokenRefresh(BaseModel):
    """Token refresh request schema."""

    refresh_token: str


class SessionUser(BaseModel):
    """Identity resolved from a session token."""

    user_id: UUID
    role: UserRole
    clinic_id: UUID | None = None
    email: str | None = None


class Caller(SessionUser):
    """Session identity plus the caller's own patient or doctor profile id."""

    patient_id: UUID | None = None
    doctor_id: UUID | None = None


class UserSummary(BaseModel):
    """Minimal user information returned by auth endpoints."""

    id: UUID
    email: EmailStr
    role: UserRole
    clinic_id: UUID | None = None

    model_config = {"from_attributes": True}


class LoginResponse(Token):
    """Login response with tokens and user info."""

    user: UserSummary


class RegisterResponse(BaseModel):
    """Registration response."""

    message: str
    user: UserSummary
    clinic_id: UUID
