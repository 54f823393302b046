"""Tests for doctor directory endpoints."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from httpx import AsyncClient


@pytest.fixture
async def directory(create_doctor) -> dict:
    """A small directory with one unlisted doctor."""
    return {
        "cardio": await create_doctor(
            full_name="Dr. Alice Heart",
            specialization="Cardiology",
            consultation_fee=Decimal("150.00"),
            experience_years=12,
            rating=Decimal("4.5"),
            bio="Interventional procedures",
        ),
        "derm": await create_doctor(
            full_name="Dr. Bob Skin",
            specialization="Dermatology",
            consultation_fee=Decimal("80.00"),
            experience_years=5,
            rating=Decimal("4.5"),
            bio="Acne and eczema, children welcome",
        ),
        "peds": await create_doctor(
            full_name="Dr. Carol Kids",
            specialization="Pediatrics",
            consultation_fee=Decimal("60.00"),
            experience_years=20,
            rating=Decimal("3.9"),
        ),
        "unverified": await create_doctor(
            full_name="Dr. Dan Pending",
            specialization="Cardiology",
            is_verified=False,
        ),
    }


@pytest.mark.asyncio
async def test_list_doctors_sorted(client: AsyncClient, directory: dict) -> None:
    """Only verified doctors are listed, best rated then most experienced first."""
    response = await client.get("/api/v1/doctors/")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    assert [item["full_name"] for item in data["items"]] == [
        "Dr. Alice Heart",
        "Dr. Bob Skin",
        "Dr. Carol Kids",
    ]


@pytest.mark.asyncio
async def test_list_doctors_alias_under_appointments(client: AsyncClient, directory: dict) -> None:
    """The booking screen reads the same listing."""
    response = await client.get("/api/v1/appointments/doctors")
    assert response.status_code == 200
    assert response.json()["total"] == 3


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "params,expected",
    [
        ({"specialization": "cardiology"}, ["Dr. Alice Heart"]),
        ({"min_experience": 10}, ["Dr. Alice Heart", "Dr. Carol Kids"]),
        ({"max_fee": "80"}, ["Dr. Bob Skin", "Dr. Carol Kids"]),
        ({"min_rating": "4.0"}, ["Dr. Alice Heart", "Dr. Bob Skin"]),
        ({"search": "CHILDREN"}, ["Dr. Bob Skin"]),
        ({"search": "pedia"}, ["Dr. Carol Kids"]),
        ({"search": "carol"}, ["Dr. Carol Kids"]),
        ({"search": "100%"}, []),
    ],
)
async def test_list_doctors_filters(
    client: AsyncClient,
    directory: dict,
    params: dict,
    expected: list[str],
) -> None:
    """Filters combine with the verified-and-active restriction."""
    response = await client.get("/api/v1/doctors/", params=params)
    assert response.status_code == 200
    assert [item["full_name"] for item in response.json()["items"]] == expected


@pytest.mark.asyncio
async def test_list_doctors_pagination(client: AsyncClient, directory: dict) -> None:
    response = await client.get("/api/v1/doctors/", params={"page": 2, "page_size": 2})
    data = response.json()
    assert data["total"] == 3
    assert data["total_pages"] == 2
    assert [item["full_name"] for item in data["items"]] == ["Dr. Carol Kids"]


@pytest.mark.asyncio
async def test_list_specializations(client: AsyncClient, directory: dict) -> None:
    response = await client.get("/api/v1/doctors/specializations")
    assert response.status_code == 200
    assert response.json() == {
        "results": 3,
        "specializations": ["Cardiology", "Dermatology", "Pediatrics"],
    }


@pytest.mark.asyncio
async def test_get_doctor_with_booked_slots(
    client: AsyncClient,
    patient: dict,
    directory: dict,
    create_appointment,
) -> None:
    """The profile lists taken upcoming slots so clients can hide them."""
    cardio = directory["cardio"]
    today = datetime.now(UTC).date()
    await create_appointment(patient["id"], cardio["id"], appointment_date=today + timedelta(days=2))
    await create_appointment(
        patient["id"],
        cardio["id"],
        appointment_date=today + timedelta(days=1),
        appointment_time="14:00",
        status="confirmed",
    )
    await create_appointment(
        patient["id"],
        cardio["id"],
        appointment_date=today + timedelta(days=3),
        status="cancelled",
    )
    await create_appointment(
        patient["id"],
        cardio["id"],
        appointment_date=today - timedelta(days=3),
        status="confirmed",
    )

    response = await client.get(f"/api/v1/doctors/{cardio['id']}")
    assert response.status_code == 200
    data = response.json()
    assert data["full_name"] == "Dr. Alice Heart"
    assert data["consultation_fee"] == 150.0
    assert data["upcoming_appointments"] == [
        {"appointment_date": (today + timedelta(days=1)).isoformat(), "appointment_time": "14:00"},
        {"appointment_date": (today + timedelta(days=2)).isoformat(), "appointment_time": "10:00"},
    ]


@pytest.mark.asyncio
async def test_get_doctor_not_a_doctor(client: AsyncClient, patient: dict) -> None:
    response = await client.get(f"/api/v1/doctors/{patient['id']}")
    assert response.status_code == 404
