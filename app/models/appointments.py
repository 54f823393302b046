"""Appointments table model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    Uuid,
    text,
)

from app.models.base import metadata, utcnow

ACTIVE_SLOT_PREDICATE = "status IN ('pending', 'confirmed')"

# Appointments table
appointments = Table(
    "appointments",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Participants (immutable after creation)
    Column("patient_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("doctor_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    # Scheduling
    Column("appointment_date", Date, nullable=False),
    Column("appointment_time", String(5), nullable=False),
    Column("duration", Integer, nullable=False, default=30),
    Column("status", Text, nullable=False, default="pending"),
    Column("appointment_type", Text, nullable=False, default="video"),
    # Clinical payload
    Column("reason", String(500), nullable=False),
    Column("symptoms", JSON, nullable=False, default=list),
    Column("notes", String(1000)),
    Column("prescription", JSON),
    Column("vital_signs", JSON),
    # Payment (amount is a snapshot of the doctor's fee at booking time)
    Column("payment_amount", Numeric(10, 2), nullable=False),
    Column("payment_status", Text, nullable=False, default="pending"),
    Column("payment_method", Text),
    Column("transaction_id", Text),
    Column("paid_at", DateTime(timezone=True)),
    # Cancellation
    Column("cancelled_by", Uuid),
    Column("cancellation_reason", Text),
    Column("cancelled_at", DateTime(timezone=True)),
    # Rating (set once, by the patient)
    Column("rating_score", Integer),
    Column("rating_comment", Text),
    Column("rated_at", DateTime(timezone=True)),
    # Audit fields
    Column("created_at", DateTime(timezone=True), nullable=False, default=utcnow),
    Column("updated_at", DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow),
    # Constraints
    CheckConstraint(
        "status IN ('pending', 'confirmed', 'completed', 'cancelled', 'no-show')",
        name="appointments_status_check",
    ),
    CheckConstraint(
        "appointment_type IN ('video', 'chat', 'in-person')",
        name="appointments_type_check",
    ),
    CheckConstraint(
        "payment_status IN ('pending', 'paid', 'refunded', 'failed')",
        name="appointments_payment_status_check",
    ),
    CheckConstraint("duration BETWEEN 15 AND 120", name="appointments_duration_check"),
    CheckConstraint(
        "rating_score IS NULL OR rating_score BETWEEN 1 AND 5",
        name="appointments_rating_score_check",
    ),
)

# Listing access paths
Index("ix_appointments_patient_date", appointments.c.patient_id, appointments.c.appointment_date)
Index("ix_appointments_doctor_date", appointments.c.doctor_id, appointments.c.appointment_date)
Index("ix_appointments_status_date", appointments.c.status, appointments.c.appointment_date)

# At most one active booking per slot, enforced by the store
Index(
    "uq_appointments_active_slot",
    appointments.c.doctor_id,
    appointments.c.appointment_date,
    appointments.c.appointment_time,
    unique=True,
    postgresql_where=text(ACTIVE_SLOT_PREDICATE),
    sqlite_where=text(ACTIVE_SLOT_PREDICATE),
)
