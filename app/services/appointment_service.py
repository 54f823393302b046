"""Appointment service for business logic."""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

import structlog
from sqlalchemy import and_, func, insert, or_, select, update
from sqlalchemy.engine import RowMapping
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.appointment_lifecycle import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    can_be_cancelled,
    compute_bmi,
    ensure_transition,
    mean_rating,
    scheduled_at,
    slot_key_at,
)
from app.core.exceptions import (
    BadRequestException,
    ConflictException,
    ForbiddenException,
    NotFoundException,
)
from app.core.principal import AdminPrincipal, DoctorPrincipal, PatientPrincipal, Principal
from app.models.appointments import appointments
from app.models.doctors import doctors
from app.models.users import users
from app.schemas.appointments import (
    AppointmentCancel,
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStats,
    AppointmentStatus,
    AppointmentStatusUpdate,
    PaymentStatus,
    Prescription,
    PrescriptionCreate,
    RatingCreate,
    VitalSigns,
    VitalSignsCreate,
)
from app.services.doctor_service import DoctorService
from app.services.medical_record_service import MedicalRecordService

logger = structlog.get_logger(__name__)

SLOT_TAKEN_MESSAGE = "This time slot is already booked. Please choose another time."

patient_user = users.alias("patient_user")
doctor_user = users.alias("doctor_user")

_ACTIVE = [status.value for status in ACTIVE_STATUSES]
_TERMINAL = [status.value for status in TERMINAL_STATUSES]

# Appointment columns copied onto the response unchanged
_PLAIN_FIELDS = (
    "id",
    "patient_id",
    "doctor_id",
    "appointment_date",
    "appointment_time",
    "duration",
    "status",
    "appointment_type",
    "reason",
    "notes",
    "prescription",
    "vital_signs",
    "cancelled_by",
    "cancellation_reason",
    "cancelled_at",
    "created_at",
    "updated_at",
)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _appointment_query():
    """Appointments joined with the participants' public profile fields."""
    return select(
        appointments,
        patient_user.c.full_name.label("patient_full_name"),
        patient_user.c.email.label("patient_email"),
        patient_user.c.phone.label("patient_phone"),
        patient_user.c.profile_image_url.label("patient_profile_image_url"),
        doctor_user.c.full_name.label("doctor_full_name"),
        doctor_user.c.profile_image_url.label("doctor_profile_image_url"),
        doctors.c.specialization.label("doctor_specialization"),
        doctors.c.consultation_fee.label("doctor_consultation_fee"),
        doctors.c.rating.label("doctor_rating"),
    ).select_from(
        appointments.outerjoin(patient_user, appointments.c.patient_id == patient_user.c.id)
        .outerjoin(doctor_user, appointments.c.doctor_id == doctor_user.c.id)
        .outerjoin(doctors, appointments.c.doctor_id == doctors.c.id)
    )


def _to_response(row: RowMapping) -> AppointmentResponse:
    """Build the denormalised appointment response from a joined row."""
    data: dict[str, Any] = {field: row[field] for field in _PLAIN_FIELDS}
    data["symptoms"] = row["symptoms"] or []

    if row["patient_full_name"] is not None:
        data["patient"] = {
            "id": row["patient_id"],
            "full_name": row["patient_full_name"],
            "email": row["patient_email"],
            "phone": row["patient_phone"],
            "profile_image_url": row["patient_profile_image_url"],
        }

    if row["doctor_full_name"] is not None:
        data["doctor"] = {
            "id": row["doctor_id"],
            "full_name": row["doctor_full_name"],
            "specialization": row["doctor_specialization"],
            "consultation_fee": row["doctor_consultation_fee"],
            "profile_image_url": row["doctor_profile_image_url"],
            "rating": row["doctor_rating"],
        }

    data["payment"] = {
        "amount": row["payment_amount"],
        "status": row["payment_status"],
        "method": row["payment_method"],
        "transaction_id": row["transaction_id"],
        "paid_at": row["paid_at"],
    }

    if row["rating_score"] is not None:
        data["rating"] = {
            "score": row["rating_score"],
            "comment": row["rating_comment"] or "",
            "rated_at": row["rated_at"],
        }

    vitals = row["vital_signs"]
    if vitals:
        data["bmi"] = compute_bmi(vitals.get("weight"), vitals.get("height"))

    return AppointmentResponse.model_validate(data)


class AppointmentService:
    """
    Appointment lifecycle manager.

    Every precondition is checked before the first write; a failed check
    raises one typed exception and leaves the store untouched.
    """

    def __init__(
        self,
        db: AsyncSession,
        doctor_service: DoctorService | None = None,
        medical_record_service: MedicalRecordService | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """Initialize service with database session and collaborators."""
        self.db = db
        self.doctors = doctor_service or DoctorService()
        self.medical_records = medical_record_service or MedicalRecordService()
        self.clock = clock or _utcnow

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _not_started(self):
        """Condition matching slots that start at or after the current clinic time."""
        today, now_hm = slot_key_at(settings.clinic_timezone, self.clock())
        return or_(
            appointments.c.appointment_date > today,
            and_(
                appointments.c.appointment_date == today,
                appointments.c.appointment_time >= now_hm,
            ),
        )

    async def _load(self, appointment_id: UUID) -> RowMapping:
        """Load an appointment with participant fields or raise NotFound."""
        stmt = _appointment_query().where(appointments.c.id == appointment_id)
        result = await self.db.execute(stmt)
        row = result.mappings().first()

        if not row:
            raise NotFoundException("Appointment not found")

        return row

    async def _save(self, appointment_id: UUID, values: dict[str, Any], *conditions) -> None:
        """
        Apply a single-record update.

        Extra conditions make the write conditional on the state that was
        validated; losing that race surfaces as a Conflict.
        """
        stmt = (
            update(appointments)
            .where(appointments.c.id == appointment_id, *conditions)
            .values(**values)
        )
        result = await self.db.execute(stmt)
        if result.rowcount == 0:
            await self.db.rollback()
            raise ConflictException("Appointment was modified by another request")

    @staticmethod
    def _is_participant(principal: Principal, row: RowMapping) -> bool:
        match principal:
            case PatientPrincipal(id=user_id):
                return row["patient_id"] == user_id
            case DoctorPrincipal(id=user_id):
                return row["doctor_id"] == user_id
            case AdminPrincipal():
                return True
        return False

    @staticmethod
    def _is_assigned_doctor(principal: Principal, row: RowMapping) -> bool:
        match principal:
            case DoctorPrincipal(id=user_id):
                return row["doctor_id"] == user_id
        return False

    @staticmethod
    def _scope(principal: Principal):
        """Restrict queries to the caller's own appointments."""
        match principal:
            case PatientPrincipal(id=user_id):
                return appointments.c.patient_id == user_id
            case DoctorPrincipal(id=user_id):
                return appointments.c.doctor_id == user_id
            case AdminPrincipal():
                raise ForbiddenException("Invalid user role for this operation")
        raise ForbiddenException("Invalid user role for this operation")

    async def _slot_taken(self, doctor_id: UUID, appointment_date, appointment_time: str) -> bool:
        stmt = select(appointments.c.id).where(
            appointments.c.doctor_id == doctor_id,
            appointments.c.appointment_date == appointment_date,
            appointments.c.appointment_time == appointment_time,
            appointments.c.status.in_(_ACTIVE),
        )
        result = await self.db.execute(stmt.limit(1))
        return result.first() is not None

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def create_appointment(
        self,
        principal: Principal,
        data: AppointmentCreate,
    ) -> AppointmentResponse:
        """
        Book an appointment slot for a patient.

        Args:
            principal: Caller, must be a patient
            data: Appointment creation data

        Returns:
            Created appointment

        Raises:
            ForbiddenException: If the caller is not a patient
            NotFoundException: If the doctor is missing or unverified
            BadRequestException: If the slot is in the past
            ConflictException: If the slot is already held
        """
        match principal:
            case PatientPrincipal(id=patient_id):
                pass
            case _:
                raise ForbiddenException("Only patients can book appointments")

        doctor = await self.doctors.get_doctor(self.db, data.doctor_id)
        if not doctor or not doctor["is_verified"]:
            raise NotFoundException("Doctor not found or not available")

        starts_at = scheduled_at(
            data.appointment_date, data.appointment_time, settings.clinic_timezone
        )
        if starts_at < self.clock():
            raise BadRequestException("Cannot book appointments in the past")

        if await self._slot_taken(data.doctor_id, data.appointment_date, data.appointment_time):
            raise ConflictException(SLOT_TAKEN_MESSAGE)

        appointment_id = uuid4()
        values = {
            "id": appointment_id,
            "patient_id": patient_id,
            "doctor_id": data.doctor_id,
            "appointment_date": data.appointment_date,
            "appointment_time": data.appointment_time,
            "duration": data.duration,
            "status": AppointmentStatus.PENDING.value,
            "appointment_type": data.appointment_type.value,
            "reason": data.reason,
            "symptoms": data.symptoms,
            "payment_amount": doctor["consultation_fee"],
            "payment_status": PaymentStatus.PENDING.value,
        }

        try:
            await self.db.execute(insert(appointments).values(**values))
            await self.db.commit()
        except IntegrityError as e:
            # A concurrent booking won the slot between the check and the insert
            await self.db.rollback()
            raise ConflictException(SLOT_TAKEN_MESSAGE) from e

        logger.info(
            "appointment_created",
            appointment_id=str(appointment_id),
            patient_id=str(patient_id),
            doctor_id=str(data.doctor_id),
            appointment_date=data.appointment_date.isoformat(),
            appointment_time=data.appointment_time,
        )

        return _to_response(await self._load(appointment_id))

    async def list_appointments(
        self,
        principal: Principal,
        filters: AppointmentFilters,
    ) -> AppointmentListResponse:
        """
        List the caller's appointments, most recent slot first.

        Args:
            principal: Patient or doctor
            filters: Status/upcoming/past filters and pagination

        Returns:
            Paginated list of appointments
        """
        conditions = [self._scope(principal)]

        if filters.status:
            conditions.append(appointments.c.status == filters.status.value)

        if filters.upcoming:
            conditions.append(self._not_started())
            conditions.append(appointments.c.status.in_(_ACTIVE))

        if filters.past:
            conditions.append(
                or_(
                    ~self._not_started(),
                    appointments.c.status.in_(_TERMINAL),
                )
            )

        count_stmt = select(func.count()).select_from(appointments).where(and_(*conditions))
        total = (await self.db.execute(count_stmt)).scalar() or 0

        offset = (filters.page - 1) * filters.page_size
        stmt = (
            _appointment_query()
            .where(and_(*conditions))
            .order_by(
                appointments.c.appointment_date.desc(),
                appointments.c.appointment_time.desc(),
                appointments.c.created_at.desc(),
            )
            .limit(filters.page_size)
            .offset(offset)
        )
        rows = (await self.db.execute(stmt)).mappings().all()

        return AppointmentListResponse(
            total=total,
            page=filters.page,
            page_size=filters.page_size,
            total_pages=(total + filters.page_size - 1) // filters.page_size,
            items=[_to_response(row) for row in rows],
        )

    async def get_appointment(
        self,
        principal: Principal,
        appointment_id: UUID,
    ) -> AppointmentResponse:
        """
        Get appointment by ID.

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If the caller is neither participant nor admin
        """
        row = await self._load(appointment_id)

        if not self._is_participant(principal, row):
            raise ForbiddenException("You are not authorized to view this appointment")

        return _to_response(row)

    async def update_status(
        self,
        principal: Principal,
        appointment_id: UUID,
        data: AppointmentStatusUpdate,
    ) -> AppointmentResponse:
        """
        Move an appointment along the transition table.

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If the caller is not the assigned doctor or an admin
            InvalidTransitionException: If the status change is not allowed
        """
        row = await self._load(appointment_id)

        if not (self._is_assigned_doctor(principal, row) or isinstance(principal, AdminPrincipal)):
            raise ForbiddenException("Only the assigned doctor can update appointment status")

        current = AppointmentStatus(row["status"])
        ensure_transition(current, data.status)

        values: dict[str, Any] = {"status": data.status.value}
        if data.notes is not None:
            values["notes"] = data.notes

        await self._save(appointment_id, values, appointments.c.status == current.value)
        await self.db.commit()

        logger.info(
            "appointment_status_updated",
            appointment_id=str(appointment_id),
            old_status=current.value,
            new_status=data.status.value,
        )

        return _to_response(await self._load(appointment_id))

    async def cancel_appointment(
        self,
        principal: Principal,
        appointment_id: UUID,
        data: AppointmentCancel,
    ) -> AppointmentResponse:
        """
        Cancel an appointment outside the cancellation window.

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If the caller is neither participant nor admin
            BadRequestException: If the status is terminal or the slot is too close
        """
        row = await self._load(appointment_id)

        if not self._is_participant(principal, row):
            raise ForbiddenException("You are not authorized to cancel this appointment")

        current = AppointmentStatus(row["status"])
        if current not in ACTIVE_STATUSES:
            raise BadRequestException(f"Cannot cancel an appointment that is {current.value}")

        now = self.clock()
        starts_at = scheduled_at(
            row["appointment_date"], row["appointment_time"], settings.clinic_timezone
        )
        window = settings.cancellation_window_hours
        if not can_be_cancelled(current, starts_at, now, window):
            raise BadRequestException(
                f"Cannot cancel appointment less than {window} hours before scheduled time"
            )

        values = {
            "status": AppointmentStatus.CANCELLED.value,
            "cancelled_by": principal.id,
            "cancellation_reason": data.reason,
            "cancelled_at": now,
        }
        await self._save(appointment_id, values, appointments.c.status == current.value)
        await self.db.commit()

        logger.info(
            "appointment_cancelled",
            appointment_id=str(appointment_id),
            cancelled_by=str(principal.id),
        )

        return _to_response(await self._load(appointment_id))

    async def add_prescription(
        self,
        principal: Principal,
        appointment_id: UUID,
        data: PrescriptionCreate,
    ) -> AppointmentResponse:
        """
        Attach a prescription to a completed appointment.

        The appointment update and the derived medical record commit together.

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If the caller is not the assigned doctor
            BadRequestException: If the appointment is not completed
            ConflictException: If a prescription is already attached
        """
        row = await self._load(appointment_id)

        if not self._is_assigned_doctor(principal, row):
            raise ForbiddenException("Only the assigned doctor can add prescription")

        if row["status"] != AppointmentStatus.COMPLETED.value:
            raise BadRequestException("Can only add prescription to completed appointments")

        if row["prescription"]:
            raise ConflictException("Prescription already added to this appointment")

        now = self.clock()
        prescription = Prescription(
            medications=data.medications,
            diagnosis=data.diagnosis,
            additional_notes=data.additional_notes,
            prescribed_by=principal.id,
            prescribed_at=now,
        ).model_dump(mode="json")

        await self._save(
            appointment_id,
            {"prescription": prescription},
            appointments.c.prescription.is_(None),
        )
        await self.medical_records.record_prescription_event(
            self.db,
            patient_id=row["patient_id"],
            appointment_id=appointment_id,
            diagnosis=data.diagnosis,
            medications=prescription["medications"],
            authored_by=principal.id,
            when=now,
        )

        logger.info(
            "prescription_added",
            appointment_id=str(appointment_id),
            doctor_id=str(principal.id),
            medications=len(data.medications),
        )

        return _to_response(await self._load(appointment_id))

    async def add_vital_signs(
        self,
        principal: Principal,
        appointment_id: UUID,
        data: VitalSignsCreate,
    ) -> AppointmentResponse:
        """
        Replace the appointment's vital signs.

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If the caller is not the assigned doctor
        """
        row = await self._load(appointment_id)

        if not self._is_assigned_doctor(principal, row):
            raise ForbiddenException("Only the assigned doctor can add vital signs")

        vitals = VitalSigns(**data.model_dump(), recorded_at=self.clock()).model_dump(mode="json")
        await self._save(appointment_id, {"vital_signs": vitals})
        await self.db.commit()

        logger.info("vital_signs_recorded", appointment_id=str(appointment_id))

        return _to_response(await self._load(appointment_id))

    async def rate_appointment(
        self,
        principal: Principal,
        appointment_id: UUID,
        data: RatingCreate,
    ) -> AppointmentResponse:
        """
        Rate a completed appointment once and refresh the doctor's aggregate.

        Raises:
            BadRequestException: If the score is out of range or the appointment is not completed
            NotFoundException: If appointment not found
            ForbiddenException: If the caller is not the patient of record
            ConflictException: If the appointment is already rated
        """
        if not 1 <= data.score <= 5:
            raise BadRequestException("Rating score must be between 1 and 5")

        row = await self._load(appointment_id)

        match principal:
            case PatientPrincipal(id=user_id) if user_id == row["patient_id"]:
                pass
            case _:
                raise ForbiddenException("Only the patient can rate the appointment")

        if row["status"] != AppointmentStatus.COMPLETED.value:
            raise BadRequestException("Can only rate completed appointments")

        if row["rating_score"] is not None:
            raise ConflictException("Appointment already rated")

        await self._save(
            appointment_id,
            {
                "rating_score": data.score,
                "rating_comment": data.comment or "",
                "rated_at": self.clock(),
            },
            appointments.c.rating_score.is_(None),
        )
        await self.db.commit()

        logger.info(
            "appointment_rated",
            appointment_id=str(appointment_id),
            doctor_id=str(row["doctor_id"]),
            score=data.score,
        )

        await self.recompute_doctor_rating(row["doctor_id"])

        return _to_response(await self._load(appointment_id))

    async def recompute_doctor_rating(self, doctor_id: UUID) -> None:
        """
        Rebuild the doctor's rating aggregate from every completed, scored appointment.

        Safe to re-run at any time to repair a stale aggregate.
        """
        stmt = select(
            func.coalesce(func.sum(appointments.c.rating_score), 0),
            func.count(appointments.c.rating_score),
        ).where(
            appointments.c.doctor_id == doctor_id,
            appointments.c.status == AppointmentStatus.COMPLETED.value,
            appointments.c.rating_score.is_not(None),
        )
        total, count = (await self.db.execute(stmt)).one()

        await self.doctors.update_rating_aggregate(
            self.db,
            doctor_id,
            rating=mean_rating(int(total), int(count)),
            total_reviews=int(count),
        )

    async def get_stats(self, principal: Principal) -> AppointmentStats:
        """Status breakdown plus upcoming and completed counts for the caller."""
        scope = self._scope(principal)

        stmt = (
            select(appointments.c.status, func.count())
            .where(scope)
            .group_by(appointments.c.status)
        )
        counts = {status: 0 for status in AppointmentStatus}
        for status, count in (await self.db.execute(stmt)).all():
            counts[AppointmentStatus(status)] = count

        upcoming_stmt = (
            select(func.count())
            .select_from(appointments)
            .where(
                scope,
                self._not_started(),
                appointments.c.status.in_(_ACTIVE),
            )
        )
        upcoming = (await self.db.execute(upcoming_stmt)).scalar() or 0

        return AppointmentStats(
            by_status=counts,
            upcoming=upcoming,
            completed=counts[AppointmentStatus.COMPLETED],
            total=sum(counts.values()),
        )
