"""Tests for medical record listing."""

from datetime import UTC, datetime, timedelta

import pytest
from httpx import AsyncClient

from app.services.medical_record_service import MedicalRecordService


@pytest.fixture
async def records(db_session, patient: dict, doctor: dict, create_user, create_doctor) -> dict:
    """Two prescriptions for the patient and one for somebody else."""
    service = MedicalRecordService()
    other_patient = await create_user("patient", full_name="Other Patient")
    other_doctor = await create_doctor(full_name="Dr. Other")
    now = datetime(2025, 5, 1, 9, 0, tzinfo=UTC)
    medications = [{"name": "Ibuprofen", "dosage": "200mg", "frequency": "daily", "duration": "5d"}]

    older = await service.record_prescription_event(
        db_session, patient["id"], None, "Sprain", medications, doctor["id"], now
    )
    newer = await service.record_prescription_event(
        db_session,
        patient["id"],
        None,
        "Migraine",
        medications,
        other_doctor["id"],
        now + timedelta(days=2),
    )
    foreign = await service.record_prescription_event(
        db_session, other_patient["id"], None, "Flu", medications, doctor["id"], now
    )
    return {"older": older, "newer": newer, "foreign": foreign}


@pytest.mark.asyncio
async def test_patient_sees_own_records_newest_first(
    client: AsyncClient,
    patient_headers: dict,
    records: dict,
) -> None:
    response = await client.get("/api/v1/medical-records/", headers=patient_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert [item["id"] for item in data["items"]] == [str(records["newer"]), str(records["older"])]
    assert data["items"][0]["title"] == "Prescription - 2025-05-03"
    assert data["items"][0]["record_type"] == "prescription"


@pytest.mark.asyncio
async def test_doctor_sees_authored_records(
    client: AsyncClient,
    doctor_headers: dict,
    records: dict,
) -> None:
    response = await client.get("/api/v1/medical-records/", headers=doctor_headers)
    ids = {item["id"] for item in response.json()["items"]}
    assert ids == {str(records["older"]), str(records["foreign"])}


@pytest.mark.asyncio
async def test_admin_sees_all_records(
    client: AsyncClient,
    admin_headers: dict,
    records: dict,
) -> None:
    response = await client.get(
        "/api/v1/medical-records/",
        params={"page_size": 2},
        headers=admin_headers,
    )
    data = response.json()
    assert data["total"] == 3
    assert data["total_pages"] == 2
    assert len(data["items"]) == 2
