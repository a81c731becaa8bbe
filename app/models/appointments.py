"""Appointments table model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Index, Table, Text, Uuid, func

from app.models.base import metadata

# Status is an open set validated against settings, so no CHECK constraint here
appointments = Table(
    "appointments",
    metadata,
    Column("id", Uuid(as_uuid=True), primary_key=True, default=uuid4),
    # Ownership / references
    Column(
        "patient_id",
        Uuid(as_uuid=True),
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column(
        "doctor_id",
        Uuid(as_uuid=True),
        ForeignKey("doctors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column(
        "clinic_id",
        Uuid(as_uuid=True),
        ForeignKey("clinics.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    # Appointment details
    Column("scheduled_at", DateTime(timezone=True), nullable=False),
    Column("status", Text, nullable=False, server_default="SCHEDULED"),
    Column("notes", Text, nullable=True),
    # Audit fields
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)

Index("idx_appointments_clinic_scheduled", appointments.c.clinic_id, appointments.c.scheduled_at)
