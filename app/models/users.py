"""User model definition using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Table,
    Text,
    Uuid,
    func,
    true,
)

from app.models.base import metadata

users = Table(
    "users",
    metadata,
    Column("id", Uuid(as_uuid=True), primary_key=True, default=uuid4),
    # Credentials
    Column("email", Text, nullable=False, unique=True, index=True),
    # NULL for patients registered by staff who never set a password
    Column("password_hash", Text, nullable=True),
    # Role is fixed at creation and decides which profile row may exist
    Column("role", Text, nullable=False),
    # Tenant
    Column(
        "clinic_id",
        Uuid(as_uuid=True),
        ForeignKey("clinics.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    ),
    # Account state
    Column("is_active", Boolean, nullable=False, server_default=true()),
    # Audit
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("last_login_at", DateTime(timezone=True)),
    CheckConstraint(
        "role IN ('ADMIN', 'DOCTOR', 'RECEPTIONIST', 'PATIENT')",
        name="users_role_check",
    ),
)
