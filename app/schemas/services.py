"""Clinic service catalog schemas."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer


class ServiceCreate(BaseModel):
    """Schema for adding a service to the clinic catalog."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    price: Decimal = Field(..., gt=0, decimal_places=2)
    is_active: bool = True


class ServiceUpdate(BaseModel):
    """Schema for updating a catalog service."""

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    price: Decimal | None = Field(None, gt=0, decimal_places=2)
    is_active: bool | None = None


class ServiceResponse(BaseModel):
    """Catalog service response schema."""

    id: UUID
    clinic_id: UUID
    name: str
    description: str | None = None
    price: Decimal
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_serializer("price", when_used="json")
    def serialize_decimal(self, value: Decimal) -> float:
        """Serialize Decimal to float for JSON."""
        return float(value)
