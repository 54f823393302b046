"""Authenticated principals."""

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class UserRole(str, Enum):
    """User role enumeration."""

    PATIENT = "patient"
    DOCTOR = "doctor"
    ADMIN = "admin"


@dataclass(frozen=True)
class PatientPrincipal:
    """A patient acting on their own behalf."""

    id: UUID


@dataclass(frozen=True)
class DoctorPrincipal:
    """A doctor acting on appointments assigned to them."""

    id: UUID


@dataclass(frozen=True)
class AdminPrincipal:
    """An operator with administrative capability."""

    id: UUID


Principal = PatientPrincipal | DoctorPrincipal | AdminPrincipal


def principal_for(user_id: UUID, role: str | UserRole) -> Principal:
    """
    Build the principal variant for a user id and role.

    Raises:
        ValueError: If the role is not a known user role
    """
    match UserRole(role):
        case UserRole.PATIENT:
            return PatientPrincipal(user_id)
        case UserRole.DOCTOR:
            return DoctorPrincipal(user_id)
        case UserRole.ADMIN:
            return AdminPrincipal(user_id)


def role_of(principal: Principal) -> UserRole:
    """Return the role a principal variant stands for."""
    match principal:
        case PatientPrincipal():
            return UserRole.PATIENT
        case DoctorPrincipal():
            return UserRole.DOCTOR
        case AdminPrincipal():
            return UserRole.ADMIN
    raise TypeError(f"Unknown principal: {principal!r}")
