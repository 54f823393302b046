"""Database models."""

from app.models.appointments import appointments
from app.models.base import metadata
from app.models.doctors import doctors
from app.models.medical_records import medical_records
from app.models.users import users

__all__ = [
    "appointments",
    "doctors",
    "medical_records",
    "metadata",
    "users",
]
