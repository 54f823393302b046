"""Medical records table model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Table,
    Text,
    Uuid,
)

from app.models.base import metadata, utcnow

medical_records = Table(
    "medical_records",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("patient_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column(
        "appointment_id",
        Uuid,
        ForeignKey("appointments.id", ondelete="SET NULL"),
        nullable=True,
    ),
    Column("record_type", Text, nullable=False, index=True),
    Column("title", String(200), nullable=False),
    Column("description", String(2000)),
    Column("diagnosis", String(1000)),
    Column("medications", JSON, nullable=False, default=list),
    Column("recorded_by", Uuid, ForeignKey("users.id"), nullable=False, index=True),
    Column("record_date", DateTime(timezone=True), nullable=False, default=utcnow),
    # Audit
    Column("created_at", DateTime(timezone=True), nullable=False, default=utcnow),
    Column("updated_at", DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow),
    CheckConstraint(
        "record_type IN ('consultation', 'lab-result', 'prescription', 'imaging', "
        "'vaccination', 'surgery', 'other')",
        name="medical_records_type_check",
    ),
)

Index("ix_medical_records_patient_date", medical_records.c.patient_id, medical_records.c.record_date)
