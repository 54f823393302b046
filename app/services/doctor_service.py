"""Doctor directory service."""

from datetime import date
from decimal import Decimal
from uuid import UUID

import structlog
from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.appointment_lifecycle import today_in
from app.core.exceptions import NotFoundException
from app.core.principal import UserRole
from app.core.redis_client import CacheManager
from app.models.appointments import appointments
from app.models.doctors import doctors
from app.models.users import users
from app.schemas.appointments import AppointmentStatus
from app.schemas.doctors import DoctorSearchParams

logger = structlog.get_logger(__name__)

ACTIVE_SLOT_STATUSES = (AppointmentStatus.PENDING.value, AppointmentStatus.CONFIRMED.value)


class DoctorService:
    """Service for doctor lookups, listings and the rating aggregate."""

    # Cache TTL in seconds
    DOCTOR_CACHE_TTL = 900  # 15 minutes for individual doctors
    DOCTOR_LIST_CACHE_TTL = 300  # 5 minutes for lists

    def __init__(self, cache_manager: CacheManager | None = None):
        """Initialize service with optional cache manager."""
        self.cache = cache_manager

    @staticmethod
    def _get_doctor_cache_key(doctor_id: UUID) -> str:
        """Generate cache key for doctor."""
        return f"doctor:{doctor_id}"

    @staticmethod
    def _profile_query():
        """Doctor profile joined with the owning user row."""
        return select(
            doctors,
            users.c.full_name,
            users.c.email,
            users.c.profile_image_url,
            users.c.is_verified,
            users.c.is_active,
        ).join(users, doctors.c.id == users.c.id)

    @staticmethod
    def _bookable_conditions() -> list:
        """Conditions every publicly listed doctor must satisfy."""
        return [
            users.c.role == UserRole.DOCTOR.value,
            users.c.is_verified == True,  # noqa: E712
            users.c.is_active == True,  # noqa: E712
        ]

    async def get_doctor(self, db: AsyncSession, doctor_id: UUID) -> dict | None:
        """
        Get a doctor straight from the store.

        Booking reads through here so the fee snapshot is never stale.
        """
        query = self._profile_query().where(
            doctors.c.id == doctor_id,
            users.c.role == UserRole.DOCTOR.value,
        )
        result = await db.execute(query)
        doctor = result.mappings().first()
        return dict(doctor) if doctor else None

    async def get_doctor_profile(self, db: AsyncSession, doctor_id: UUID) -> dict:
        """
        Get a public doctor profile with the slots already taken.

        Raises:
            NotFoundException: If no doctor has this ID
        """
        doctor: dict | None = None
        if self.cache:
            doctor = self.cache.get_json(self._get_doctor_cache_key(doctor_id))

        if not doctor:
            doctor = await self.get_doctor(db, doctor_id)
            if not doctor:
                raise NotFoundException("Doctor not found")
            if self.cache:
                self.cache.set_json(
                    self._get_doctor_cache_key(doctor_id),
                    doctor,
                    ttl=self.DOCTOR_CACHE_TTL,
                )

        # Booked slots change with every booking, never cache them
        doctor["upcoming_appointments"] = await self.get_booked_slots(db, doctor_id)
        return doctor

    async def get_booked_slots(
        self,
        db: AsyncSession,
        doctor_id: UUID,
        from_date: date | None = None,
    ) -> list[dict]:
        """List the doctor's pending or confirmed slots from ``from_date`` onward."""
        from_date = from_date or today_in(settings.clinic_timezone)
        query = (
            select(appointments.c.appointment_date, appointments.c.appointment_time)
            .where(
                appointments.c.doctor_id == doctor_id,
                appointments.c.status.in_(ACTIVE_SLOT_STATUSES),
                appointments.c.appointment_date >= from_date,
            )
            .order_by(appointments.c.appointment_date, appointments.c.appointment_time)
        )
        result = await db.execute(query)
        return [dict(row) for row in result.mappings().all()]

    async def list_doctors(self, db: AsyncSession, params: DoctorSearchParams) -> dict:
        """List bookable doctors with filtering, sorted by rating then experience."""
        cache_key = params.cache_key()
        if self.cache:
            cached = self.cache.get_json(cache_key)
            if cached:
                return cached

        conditions = self._bookable_conditions()

        if params.specialization:
            conditions.append(
                func.lower(doctors.c.specialization) == params.specialization.lower()
            )

        if params.min_experience is not None:
            conditions.append(doctors.c.experience_years >= params.min_experience)

        if params.max_fee is not None:
            conditions.append(doctors.c.consultation_fee <= params.max_fee)

        if params.min_rating is not None:
            conditions.append(doctors.c.rating >= params.min_rating)

        if params.search:
            conditions.append(
                or_(
                    users.c.full_name.icontains(params.search, autoescape=True),
                    doctors.c.specialization.icontains(params.search, autoescape=True),
                    doctors.c.bio.icontains(params.search, autoescape=True),
                )
            )

        count_query = (
            select(func.count())
            .select_from(doctors.join(users, doctors.c.id == users.c.id))
            .where(and_(*conditions))
        )
        total = (await db.execute(count_query)).scalar() or 0

        query = (
            self._profile_query()
            .where(and_(*conditions))
            .order_by(
                doctors.c.rating.desc(),
                doctors.c.experience_years.desc(),
                users.c.full_name,
            )
            .offset((params.page - 1) * params.page_size)
            .limit(params.page_size)
        )
        result = await db.execute(query)

        listing = {
            "total": total,
            "page": params.page,
            "page_size": params.page_size,
            "total_pages": (total + params.page_size - 1) // params.page_size,
            "items": [dict(d) for d in result.mappings().all()],
        }

        if self.cache:
            self.cache.set_json(cache_key, listing, ttl=self.DOCTOR_LIST_CACHE_TTL)

        return listing

    async def get_specializations(self, db: AsyncSession) -> list[str]:
        """Sorted distinct specializations of bookable doctors."""
        query = (
            select(doctors.c.specialization)
            .distinct()
            .join(users, doctors.c.id == users.c.id)
            .where(and_(*self._bookable_conditions()))
            .order_by(doctors.c.specialization)
        )
        result = await db.execute(query)
        return [row for row in result.scalars().all() if row]

    async def update_rating_aggregate(
        self,
        db: AsyncSession,
        doctor_id: UUID,
        rating: Decimal,
        total_reviews: int,
    ) -> None:
        """Overwrite the doctor's rating aggregate and drop cached copies."""
        await db.execute(
            update(doctors)
            .where(doctors.c.id == doctor_id)
            .values(rating=rating, total_reviews=total_reviews)
        )
        await db.commit()

        if self.cache:
            self.cache.delete(self._get_doctor_cache_key(doctor_id))
            self.cache.delete_pattern("doctor:list:*")

        logger.info(
            "doctor_rating_recomputed",
            doctor_id=str(doctor_id),
            rating=str(rating),
            total_reviews=total_reviews,
        )
