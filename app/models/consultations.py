"""Consultation and prescription models using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Table, Text, Uuid, func

from app.models.base import metadata

consultations = Table(
    "consultations",
    metadata,
    Column("id", Uuid(as_uuid=True), primary_key=True, default=uuid4),
    # One consultation per appointment
    Column(
        "appointment_id",
        Uuid(as_uuid=True),
        ForeignKey("appointments.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    ),
    Column("diagnosis", Text, nullable=False),
    Column("treatment", Text, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)

# Append-only: rows are never updated once written
prescriptions = Table(
    "prescriptions",
    metadata,
    Column("id", Uuid(as_uuid=True), primary_key=True, default=uuid4),
    Column(
        "consultation_id",
        Uuid(as_uuid=True),
        ForeignKey("consultations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("medications", Text, nullable=False),
    Column("instructions", Text),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)
