"""Doctor model definition using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, String, Table, Uuid, func

from app.models.base import metadata

doctors = Table(
    "doctors",
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
    # Professional information
    Column("specialization", String(255), nullable=False),
    Column("license_number", String(100)),
    # Metadata
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)
