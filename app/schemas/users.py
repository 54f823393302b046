"""User schemas for request/response validation."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr

from app.core.principal import UserRole


class UserResponse(BaseModel):
    """User schema for API responses."""

    id: UUID
    email: EmailStr
    full_name: str
    phone: str | None = None
    role: UserRole
    profile_image_url: str | None = None
    date_of_birth: date | None = None
    gender: str | None = None
    blood_type: str | None = None
    allergies: list[str] | None = None
    is_active: bool
    is_verified: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
