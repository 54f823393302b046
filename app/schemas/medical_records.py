"""Medical record schemas."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class RecordType(str, Enum):
    """Medical record type enumeration."""

    CONSULTATION = "consultation"
    LAB_RESULT = "lab-result"
    PRESCRIPTION = "prescription"
    IMAGING = "imaging"
    VACCINATION = "vaccination"
    SURGERY = "surgery"
    OTHER = "other"


class MedicalRecordResponse(BaseModel):
    """Medical record response."""

    id: UUID
    patient_id: UUID
    appointment_id: UUID | None = None
    record_type: RecordType
    title: str
    description: str | None = None
    diagnosis: str | None = None
    medications: list[dict] = Field(default_factory=list)
    recorded_by: UUID
    record_date: datetime
    created_at: datetime

    model_config = {"from_attributes": True}


class MedicalRecordListResponse(BaseModel):
    """Paginated medical record list."""

    total: int
    page: int
    page_size: int
    total_pages: int
    items: list[MedicalRecordResponse]
