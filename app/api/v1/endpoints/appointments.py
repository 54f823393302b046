"""Appointment endpoints."""

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.config import settings
from app.core.redis_client import CacheManager
from app.dependencies import CurrentPrincipal, DatabaseSession, get_cache_manager
from app.schemas.appointments import (
    AppointmentCancel,
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStats,
    AppointmentStatus,
    AppointmentStatusUpdate,
    PrescriptionCreate,
    RatingCreate,
    VitalSignsCreate,
)
from app.schemas.doctors import DoctorListResponse, DoctorSearchParams
from app.services.appointment_service import AppointmentService
from app.services.doctor_service import DoctorService

router = APIRouter()


def get_appointment_service(
    db: DatabaseSession,
    cache_manager: CacheManager | None = Depends(get_cache_manager),
) -> AppointmentService:
    """Get appointment service bound to the request's session."""
    return AppointmentService(db, doctor_service=DoctorService(cache_manager))


@router.get(
    "/doctors",
    response_model=DoctorListResponse,
    status_code=status.HTTP_200_OK,
    summary="List bookable doctors",
)
async def list_doctors(
    db: DatabaseSession,
    cache_manager: CacheManager | None = Depends(get_cache_manager),
    specialization: str | None = Query(None),
    min_experience: int | None = Query(None, ge=0),
    max_fee: Decimal | None = Query(None, ge=0),
    min_rating: Decimal | None = Query(None, ge=0, le=5),
    search: str | None = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
) -> DoctorListResponse:
    """
    List verified, active doctors for booking.

    Public listing; no authentication required.
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
    listing = await DoctorService(cache_manager).list_doctors(db, params)
    return DoctorListResponse.model_validate(listing)


@router.get(
    "/stats",
    response_model=AppointmentStats,
    status_code=status.HTTP_200_OK,
    summary="Appointment statistics",
)
async def get_stats(
    principal: CurrentPrincipal,
    service: AppointmentService = Depends(get_appointment_service),
) -> AppointmentStats:
    """Status breakdown of the caller's appointments."""
    return await service.get_stats(principal)


@router.get(
    "/my-appointments",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    summary="List my appointments",
)
async def list_my_appointments(
    principal: CurrentPrincipal,
    service: AppointmentService = Depends(get_appointment_service),
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    upcoming: bool = Query(False),
    past: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
) -> AppointmentListResponse:
    """
    List appointments of the authenticated patient or doctor.

    Args:
        principal: Authenticated principal
        service: Appointment service
        status_filter: Filter by status
        upcoming: Only future pending or confirmed appointments
        past: Only past or finished appointments
        page: Page number
        page_size: Items per page

    Returns:
        Paginated list of appointments, most recent slot first
    """
    filters = AppointmentFilters(
        status=status_filter,
        upcoming=upcoming,
        past=past,
        page=page,
        page_size=page_size,
    )
    return await service.list_appointments(principal, filters)


@router.post(
    "/",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book an appointment",
)
async def create_appointment(
    data: AppointmentCreate,
    principal: CurrentPrincipal,
    service: AppointmentService = Depends(get_appointment_service),
) -> AppointmentResponse:
    """
    Book a slot with a doctor for the authenticated patient.

    Args:
        data: Appointment creation data
        principal: Authenticated principal
        service: Appointment service

    Returns:
        Created appointment
    """
    return await service.create_appointment(principal, data)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: UUID,
    principal: CurrentPrincipal,
    service: AppointmentService = Depends(get_appointment_service),
) -> AppointmentResponse:
    """Get a specific appointment by ID."""
    return await service.get_appointment(principal, appointment_id)


@router.patch(
    "/{appointment_id}/status",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Update appointment status",
)
async def update_appointment_status(
    appointment_id: UUID,
    data: AppointmentStatusUpdate,
    principal: CurrentPrincipal,
    service: AppointmentService = Depends(get_appointment_service),
) -> AppointmentResponse:
    """
    Move an appointment to a new status.

    Only the assigned doctor or an admin may change the status, and only
    along the allowed transitions.
    """
    return await service.update_status(principal, appointment_id, data)


@router.patch(
    "/{appointment_id}/cancel",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Cancel appointment",
)
async def cancel_appointment(
    appointment_id: UUID,
    principal: CurrentPrincipal,
    data: AppointmentCancel | None = None,
    service: AppointmentService = Depends(get_appointment_service),
) -> AppointmentResponse:
    """Cancel an appointment more than the cancellation window ahead of its slot."""
    return await service.cancel_appointment(
        principal, appointment_id, data or AppointmentCancel()
    )


@router.post(
    "/{appointment_id}/prescription",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Add prescription",
)
async def add_prescription(
    appointment_id: UUID,
    data: PrescriptionCreate,
    principal: CurrentPrincipal,
    service: AppointmentService = Depends(get_appointment_service),
) -> AppointmentResponse:
    """Attach a prescription to a completed appointment."""
    return await service.add_prescription(principal, appointment_id, data)


@router.post(
    "/{appointment_id}/vital-signs",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Record vital signs",
)
async def add_vital_signs(
    appointment_id: UUID,
    data: VitalSignsCreate,
    principal: CurrentPrincipal,
    service: AppointmentService = Depends(get_appointment_service),
) -> AppointmentResponse:
    """Record the patient's vital signs for an appointment."""
    return await service.add_vital_signs(principal, appointment_id, data)


@router.post(
    "/{appointment_id}/rate",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Rate appointment",
)
async def rate_appointment(
    appointment_id: UUID,
    data: RatingCreate,
    principal: CurrentPrincipal,
    service: AppointmentService = Depends(get_appointment_service),
) -> AppointmentResponse:
    """Rate a completed appointment; each appointment can be rated once."""
    return await service.rate_appointment(principal, appointment_id, data)
