"""Doctor schemas for request/response validation."""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer


class Weekday(str, Enum):
    """Day of week for availability windows."""

    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"


class AvailabilityWindow(BaseModel):
    """Weekly availability window advertised by a doctor."""

    day: Weekday
    start_time: str = Field(..., examples=["09:00"])
    end_time: str = Field(..., examples=["17:00"])
    is_available: bool = True


# ============================================================================
# Doctor Response Schemas
# ============================================================================


class DoctorResponse(BaseModel):
    """Public doctor profile."""

    id: UUID
    full_name: str
    email: str
    specialization: str
    experience_years: int = 0
    consultation_fee: Decimal = Decimal("0")
    qualifications: list[str] | None = None
    availability: list[AvailabilityWindow] | None = None
    profile_image_url: str | None = None
    bio: str | None = None
    rating: Decimal = Decimal("0")
    total_reviews: int = 0

    model_config = {"from_attributes": True}

    @field_serializer("consultation_fee", "rating", when_used="json")
    def serialize_decimal(self, value: Decimal) -> float:
        """Serialize Decimal to float for JSON."""
        return float(value)


class BookedSlot(BaseModel):
    """A slot already held by a pending or confirmed appointment."""

    appointment_date: date
    appointment_time: str


class DoctorDetailResponse(DoctorResponse):
    """Doctor profile with the slots that are no longer bookable."""

    upcoming_appointments: list[BookedSlot] = Field(default_factory=list)


class DoctorListResponse(BaseModel):
    """Paginated doctor listing."""

    total: int
    page: int
    page_size: int
    total_pages: int
    items: list[DoctorResponse]


class SpecializationsResponse(BaseModel):
    """Distinct specializations offered by bookable doctors."""

    results: int
    specializations: list[str]


# ============================================================================
# Doctor Search Schemas
# ============================================================================


class DoctorSearchParams(BaseModel):
    """Doctor search parameters."""

    specialization: str | None = None
    min_experience: int | None = Field(None, ge=0)
    max_fee: Decimal | None = Field(None, ge=0)
    min_rating: Decimal | None = Field(None, ge=0, le=5)
    search: str | None = Field(None, max_length=100)
    page: int = Field(1, ge=1)
    page_size: int = Field(10, ge=1, le=100)

    def cache_key(self) -> str:
        """Stable cache key for this parameter set."""
        parts = [
            self.specialization or "",
            "" if self.min_experience is None else str(self.min_experience),
            "" if self.max_fee is None else str(self.max_fee),
            "" if self.min_rating is None else str(self.min_rating),
            (self.search or "").lower(),
            str(self.page),
            str(self.page_size),
        ]
        return "doctor:list:" + ":".join(parts)
