"""Doctor directory endpoints."""

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.config import settings
from app.core.redis_client import CacheManager
from app.dependencies import DatabaseSession, get_cache_manager
from app.schemas.doctors import (
    DoctorDetailResponse,
    DoctorListResponse,
    DoctorSearchParams,
    SpecializationsResponse,
)
from app.services.doctor_service import DoctorService

router = APIRouter(prefix="/doctors", tags=["Doctors"])


def get_doctor_service(
    cache_manager: CacheManager | None = Depends(get_cache_manager),
) -> DoctorService:
    """Get doctor service instance."""
    return DoctorService(cache_manager=cache_manager)


@router.get("/", response_model=DoctorListResponse)
async def list_doctors(
    db: DatabaseSession,
    doctor_service: DoctorService = Depends(get_doctor_service),
    specialization: str | None = Query(None, description="Filter by specialization"),
    min_experience: int | None = Query(None, ge=0, description="Minimum years of experience"),
    max_fee: Decimal | None = Query(None, ge=0, description="Maximum consultation fee"),
    min_rating: Decimal | None = Query(None, ge=0, le=5, description="Minimum rating"),
    search: str | None = Query(None, max_length=100, description="Name, specialty or bio"),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
):
    """
    List verified, active doctors.

    Results are sorted by rating, then years of experience.
    """
    params = DoctorSearchParams(
        specialization=specialization,
        min_experience=min_experience,
        max_fee=max_fee,
        min_rating=min_rating,
        search=search,
        page=page,
        page_size=page_size,
    )
    return await doctor_service.list_doctors(db, params)


@router.get("/specializations", response_model=SpecializationsResponse)
async def list_specializations(
    db: DatabaseSession,
    doctor_service: DoctorService = Depends(get_doctor_service),
):
    """Distinct specializations offered by bookable doctors."""
    specializations = await doctor_service.get_specializations(db)
    return SpecializationsResponse(results=len(specializations), specializations=specializations)


@router.get("/{doctor_id}", response_model=DoctorDetailResponse)
async def get_doctor(
    doctor_id: UUID,
    db: DatabaseSession,
    doctor_service: DoctorService = Depends(get_doctor_service),
):
    """Get a doctor's public profile with the upcoming slots already booked."""
    return await doctor_service.get_doctor_profile(db, doctor_id)
