"""Appointment schemas for request/response validation."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer, field_validator

TIME_OF_DAY_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"


class AppointmentType(str, Enum):
    """Appointment channel enumeration."""

    VIDEO = "video"
    CHAT = "chat"
    IN_PERSON = "in-person"


class PaymentStatus(str, Enum):
    """Payment status enumeration."""

    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"
    FAILED = "failed"


class PaymentMethod(str, Enum):
    """Payment method enumeration."""

    CARD = "card"
    CASH = "cash"
    INSURANCE = "insurance"
    OTHER = "other"


# ============================================================================
# Request Schemas
# ============================================================================


class AppointmentCreate(BaseModel):
    """Schema for booking a new appointment."""

    doctor_id: UUID
    appointment_date: date
    appointment_time: str = Field(..., pattern=TIME_OF_DAY_PATTERN, examples=["14:30"])
    reason: str = Field(..., min_length=1, max_length=500)
    symptoms: list[str] = Field(default_factory=list)
    appointment_type: AppointmentType = AppointmentType.VIDEO
    duration: int = Field(default=30, ge=15, le=120)

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v: str) -> str:
        """Reject whitespace-only reasons."""
        if not v.strip():
            raise ValueError("Reason for appointment is required")
        return v.strip()


class AppointmentStatusUpdate(BaseModel):
    """Schema for updating appointment status."""

    status: AppointmentStatus
    notes: str | None = Field(None, max_length=1000)


class AppointmentCancel(BaseModel):
    """Schema for cancelling an appointment."""

    reason: str | None = Field(None, max_length=500)


class Medication(BaseModel):
    """A single prescribed medication."""

    name: str = Field(..., min_length=1)
    dosage: str = Field(..., min_length=1)
    frequency: str = Field(..., min_length=1)
    duration: str = Field(..., min_length=1)
    instructions: str | None = None


class PrescriptionCreate(BaseModel):
    """Schema for attaching a prescription."""

    medications: list[Medication] = Field(..., min_length=1)
    diagnosis: str = Field(..., min_length=1, max_length=1000)
    additional_notes: str | None = Field(None, max_length=1000)


class VitalSignsCreate(BaseModel):
    """Schema for recording vital signs."""

    blood_pressure: str | None = Field(None, pattern=r"^\d{2,3}/\d{2,3}$", examples=["120/80"])
    heart_rate: int | None = Field(None, gt=0, le=300)
    temperature: float | None = Field(None, gt=25, lt=45)
    weight: float | None = Field(None, gt=0, description="Weight in kg")
    height: float | None = Field(None, gt=0, description="Height in cm")
    oxygen_level: float | None = Field(None, ge=0, le=100)


class RatingCreate(BaseModel):
    """Schema for rating a completed appointment."""

    # Bounds are enforced by the service so direct callers get the same error
    score: int
    comment: str | None = Field(None, max_length=500)


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering."""

    status: AppointmentStatus | None = None
    upcoming: bool = False
    past: bool = False
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1, le=100)


# ============================================================================
# Response Schemas
# ============================================================================


class PatientSummary(BaseModel):
    """Public patient fields embedded in appointment responses."""

    id: UUID
    full_name: str | None = None
    email: str | None = None
    phone: str | None = None
    profile_image_url: str | None = None


class DoctorSummary(BaseModel):
    """Public doctor fields embedded in appointment responses."""

    id: UUID
    full_name: str | None = None
    specialization: str | None = None
    consultation_fee: Decimal | None = None
    profile_image_url: str | None = None
    rating: Decimal | None = None

    @field_serializer("consultation_fee", "rating", when_used="json")
    def serialize_decimal(self, value: Decimal | None) -> float | None:
        """Serialize Decimal to float for JSON."""
        return float(value) if value is not None else None


class Prescription(BaseModel):
    """Prescription attached to a completed appointment."""

    medications: list[Medication]
    diagnosis: str
    additional_notes: str | None = None
    prescribed_by: UUID
    prescribed_at: datetime


class VitalSigns(VitalSignsCreate):
    """Vital signs as stored on the appointment."""

    recorded_at: datetime


class Payment(BaseModel):
    """Payment sub-record."""

    amount: Decimal
    status: PaymentStatus = PaymentStatus.PENDING
    method: PaymentMethod | None = None
    transaction_id: str | None = None
    paid_at: datetime | None = None

    @field_serializer("amount", when_used="json")
    def serialize_amount(self, value: Decimal) -> float:
        """Serialize Decimal to float for JSON."""
        return float(value)


class Rating(BaseModel):
    """Patient rating of a completed appointment."""

    score: int
    comment: str = ""
    rated_at: datetime | None = None


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: UUID
    patient_id: UUID
    doctor_id: UUID
    patient: PatientSummary | None = None
    doctor: DoctorSummary | None = None
    appointment_date: date
    appointment_time: str
    duration: int
    status: AppointmentStatus
    appointment_type: AppointmentType
    reason: str
    symptoms: list[str] = Field(default_factory=list)
    notes: str | None = None
    prescription: Prescription | None = None
    vital_signs: VitalSigns | None = None
    bmi: float | None = None
    payment: Payment
    cancelled_by: UUID | None = None
    cancellation_reason: str | None = None
    cancelled_at: datetime | None = None
    rating: Rating | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AppointmentListResponse(BaseModel):
    """Schema for paginated appointment list response."""

    total: int
    page: int
    page_size: int
    total_pages: int
    items: list[AppointmentResponse]


class AppointmentStats(BaseModel):
    """Dashboard counters for the caller's appointments."""

    by_status: dict[AppointmentStatus, int]
    upcoming: int
    completed: int
    total: int
