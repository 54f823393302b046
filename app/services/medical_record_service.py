"""Medical record service."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.principal import AdminPrincipal, DoctorPrincipal, PatientPrincipal, Principal
from app.models.medical_records import medical_records
from app.schemas.medical_records import (
    MedicalRecordListResponse,
    MedicalRecordResponse,
    RecordType,
)


class MedicalRecordService:
    """Service for patient medical records."""

    async def record_prescription_event(
        self,
        db: AsyncSession,
        patient_id: UUID,
        appointment_id: UUID,
        diagnosis: str,
        medications: list[dict],
        authored_by: UUID,
        when: datetime,
    ) -> UUID:
        """
        Record a prescription in the patient's medical history.

        Commits the session, so any pending write the caller made on the same
        session lands in the same transaction.

        Returns:
            ID of the new medical record
        """
        record_id = uuid4()
        await db.execute(
            insert(medical_records).values(
                id=record_id,
                patient_id=patient_id,
                appointment_id=appointment_id,
                record_type=RecordType.PRESCRIPTION.value,
                title=f"Prescription - {when.date().isoformat()}",
                description=diagnosis,
                diagnosis=diagnosis,
                medications=medications,
                recorded_by=authored_by,
                record_date=when,
            )
        )
        await db.commit()
        return record_id

    async def list_records(
        self,
        db: AsyncSession,
        principal: Principal,
        page: int = 1,
        page_size: int = 10,
    ) -> MedicalRecordListResponse:
        """List the records visible to the principal, newest first."""
        match principal:
            case PatientPrincipal(id=user_id):
                conditions = [medical_records.c.patient_id == user_id]
            case DoctorPrincipal(id=user_id):
                conditions = [medical_records.c.recorded_by == user_id]
            case AdminPrincipal():
                conditions = []

        count_stmt = select(func.count()).select_from(medical_records).where(*conditions)
        total = (await db.execute(count_stmt)).scalar() or 0

        stmt = (
            select(medical_records)
            .where(*conditions)
            .order_by(medical_records.c.record_date.desc())
            .limit(page_size)
            .offset((page - 1) * page_size)
        )
        rows = (await db.execute(stmt)).mappings().all()

        return MedicalRecordListResponse(
            total=total,
            page=page,
            page_size=page_size,
            total_pages=(total + page_size - 1) // page_size,
            items=[MedicalRecordResponse.model_validate(dict(row)) for row in rows],
        )
