"""User model definition using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    String,
    Table,
    Text,
    Uuid,
)

from app.models.base import metadata, utcnow

users = Table(
    "users",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Identity
    Column("email", Text, nullable=False, unique=True, index=True),
    Column("full_name", Text, nullable=False),
    Column("phone", String(20)),
    Column("role", Text, nullable=False, server_default="patient", index=True),
    Column("profile_image_url", Text),
    # Patient profile
    Column("date_of_birth", Date),
    Column("gender", String(20)),
    Column("blood_type", String(5)),
    Column("allergies", JSON),
    # Account state
    Column("is_active", Boolean, nullable=False, default=True),
    Column("is_verified", Boolean, nullable=False, default=False),
    # Audit
    Column("created_at", DateTime(timezone=True), nullable=False, default=utcnow),
    Column("updated_at", DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow),
    CheckConstraint("role IN ('patient', 'doctor', 'admin')", name="users_role_check"),
)
