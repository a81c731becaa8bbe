"""Patient model definition using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import Column, Date, DateTime, ForeignKey, String, Table, Text, Uuid, func

from app.models.base import metadata

patients = Table(
    "patients",
    metadata,
    Column("id", Uuid(as_uuid=True), primary_key=True, default=uuid4),
    Column(
        "user_id",
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    ),
    # Personal information
    Column("first_name", String(100), nullable=False),
    Column("last_name", String(100), nullable=False),
    Column("date_of_birth", Date, nullable=False),
    # Contact information
    Column("phone", String(30)),
    Column("address", Text),
    # Metadata
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)
