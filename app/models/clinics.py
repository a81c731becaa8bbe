"""Clinic model definition using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import Column, DateTime, String, Table, Text, Uuid, func

from app.models.base import metadata

clinics = Table(
    "clinics",
    metadata,
    Column("id", Uuid(as_uuid=True), primary_key=True, default=uuid4),
    # Basic Information
    Column("name", String(255), nullable=False, index=True),
    Column("address", Text, nullable=False, server_default=""),
    Column("phone", String(30), nullable=False, server_default=""),
    # Metadata
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)
