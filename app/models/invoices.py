"""Invoice model definition using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Table,
    Text,
    Uuid,
    func,
)

from app.models.base import metadata

invoices = Table(
    "invoices",
    metadata,
    Column("id", Uuid(as_uuid=True), primary_key=True, default=uuid4),
    Column(
        "patient_id",
        Uuid(as_uuid=True),
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("amount", Numeric(10, 2), nullable=False),
    # PENDING -> PAID, exactly once
    Column("status", String(20), nullable=False, server_default="PENDING", index=True),
    Column("paid_at", DateTime(timezone=True)),
    # Stripe payment intent (or checkout session) id
    Column("stripe_payment_id", Text, index=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint("status IN ('PENDING', 'PAID')", name="invoices_status_check"),
)
