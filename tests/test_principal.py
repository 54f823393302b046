"""Tests for principal resolution."""

from uuid import uuid4

import pytest

from app.core.principal import (
    AdminPrincipal,
    DoctorPrincipal,
    PatientPrincipal,
    UserRole,
    principal_for,
    role_of,
)


@pytest.mark.parametrize(
    "role,variant",
    [
        ("patient", PatientPrincipal),
        ("doctor", DoctorPrincipal),
        ("admin", AdminPrincipal),
        (UserRole.DOCTOR, DoctorPrincipal),
    ],
)
def test_principal_for_role(role, variant):
    user_id = uuid4()
    principal = principal_for(user_id, role)
    assert isinstance(principal, variant)
    assert principal.id == user_id
    assert role_of(principal) == UserRole(role)


def test_unknown_role_is_rejected():
    with pytest.raises(ValueError):
        principal_for(uuid4(), "pharmacist")


def test_principals_are_immutable_values():
    user_id = uuid4()
    assert PatientPrincipal(user_id) == PatientPrincipal(user_id)
    assert PatientPrincipal(user_id) != DoctorPrincipal(user_id)
    with pytest.raises(AttributeError):
        PatientPrincipal(user_id).id = uuid4()
