"""Medical record endpoints."""

from fastapi import APIRouter, Query

from app.config import settings
from app.dependencies import CurrentPrincipal, DatabaseSession
from app.schemas.medical_records import MedicalRecordListResponse
from app.services.medical_record_service import MedicalRecordService

router = APIRouter(prefix="/medical-records", tags=["Medical Records"])


@router.get("/", response_model=MedicalRecordListResponse)
async def list_medical_records(
    principal: CurrentPrincipal,
    db: DatabaseSession,
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
):
    """
    List medical records visible to the caller, newest first.

    Patients see their own history, doctors see the records they authored.
    """
    return await MedicalRecordService().list_records(db, principal, page, page_size)
