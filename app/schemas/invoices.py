"""Invoice and payment schemas."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer


class InvoiceStatus(str, Enum):
    """Invoice status enumeration."""

    PENDING = "PENDING"
    PAID = "PAID"


class InvoiceCreate(BaseModel):
    """Schema for billing a patient."""

    patient_id: UUID
    amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)


class InvoiceResponse(BaseModel):
    """Invoice response schema."""

    id: UUID
    patient_id: UUID
    amount: Decimal
    status: InvoiceStatus
    paid_at: datetime | None = None
    stripe_payment_id: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_serializer("amount", when_used="json")
    def serialize_decimal(self, value: Decimal) -> float:
        """Serialize Decimal to float for JSON."""
        return float(value)


class InvoiceFilters(BaseModel):
    """Schema for invoice filtering."""

    patient_id: UUID | None = None
    status: InvoiceStatus | None = None


class CheckoutResponse(BaseModel):
    """Hosted checkout page created for an invoice."""

    url: str | None
    session_id: str


class VerifyPaymentRequest(BaseModel):
    """Pull verification of a checkout session."""

    session_id: str = Field(..., min_length=1)


class VerifyPaymentResponse(BaseModel):
    """Result of a pull verification."""

    success: bool = True
    message: str
    payment_status: str
    invoice: InvoiceResponse


class WebhookAck(BaseModel):
    """Acknowledgement returned to the payment provider."""

    received: bool = True
