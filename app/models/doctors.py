"""Doctor model definition using SQLAlchemy Core."""

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    Uuid,
)

from app.models.base import metadata, utcnow

# Doctor profile shares its primary key with the owning user row
doctors = Table(
    "doctors",
    metadata,
    Column(
        "id",
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    # Professional credentials
    Column("license_number", String(100), unique=True),
    Column("specialization", String(200), nullable=False, index=True),
    Column("qualifications", JSON),
    Column("experience_years", Integer, nullable=False, default=0),
    # Practice information
    Column("consultation_fee", Numeric(10, 2), nullable=False, default=0),
    Column("bio", Text),
    Column("availability", JSON),
    # Aggregate over rated, completed appointments
    Column("rating", Numeric(3, 2), nullable=False, default=0),
    Column("total_reviews", Integer, nullable=False, default=0),
    # Metadata
    Column("created_at", DateTime(timezone=True), nullable=False, default=utcnow),
    Column("updated_at", DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow),
)
