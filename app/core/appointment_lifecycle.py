"""
Appointment lifecycle rules.

Pure functions over appointment state, kept free of persistence so the
transition table and the scheduling policies can be checked in isolation.
"""

from datetime import date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal
from zoneinfo import ZoneInfo

from app.core.exceptions import InvalidTransitionException
from app.schemas.appointments import AppointmentStatus

ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset(
        {AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.CONFIRMED: frozenset(
        {
            AppointmentStatus.COMPLETED,
            AppointmentStatus.CANCELLED,
            AppointmentStatus.NO_SHOW,
        }
    ),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.NO_SHOW: frozenset(),
}

# Statuses that hold a slot
ACTIVE_STATUSES: frozenset[AppointmentStatus] = frozenset(
    {AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED}
)

TERMINAL_STATUSES: frozenset[AppointmentStatus] = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)


def can_transition(current: AppointmentStatus, requested: AppointmentStatus) -> bool:
    """Check whether the transition table allows ``current -> requested``."""
    return requested in ALLOWED_TRANSITIONS[current]


def ensure_transition(current: AppointmentStatus, requested: AppointmentStatus) -> None:
    """
    Validate a status change against the transition table.

    Raises:
        InvalidTransitionException: If the pair is not in the table
    """
    if not can_transition(current, requested):
        raise InvalidTransitionException(current.value, requested.value)


def scheduled_at(appointment_date: date, appointment_time: str, tz_name: str) -> datetime:
    """
    Combine a calendar date and an ``HH:MM`` time into an aware datetime.

    The slot is interpreted in the clinic timezone.
    """
    slot_time = time.fromisoformat(appointment_time)
    return datetime.combine(appointment_date, slot_time, tzinfo=ZoneInfo(tz_name))


def today_in(tz_name: str, now: datetime | None = None) -> date:
    """Calendar date in the clinic timezone."""
    tz = ZoneInfo(tz_name)
    return now.astimezone(tz).date() if now else datetime.now(tz).date()


def slot_key_at(tz_name: str, now: datetime) -> tuple[date, str]:
    """
    The clinic-local ``(date, "HH:MM")`` pair for an instant.

    Slots at or after this key have not started yet; zero-padded ``HH:MM``
    strings order the same way as the times they name.
    """
    local = now.astimezone(ZoneInfo(tz_name))
    return local.date(), local.strftime("%H:%M")


def can_be_cancelled(
    status: AppointmentStatus,
    starts_at: datetime,
    now: datetime,
    window_hours: int = 24,
) -> bool:
    """Check the cancellation window: active status and strictly more than the window ahead."""
    if status not in ACTIVE_STATUSES:
        return False
    return starts_at - now > timedelta(hours=window_hours)


def compute_bmi(weight: float | None, height: float | None) -> float | None:
    """Body mass index from weight in kg and height in cm, rounded to 2 places."""
    if not weight or not height:
        return None
    height_m = height / 100
    return round(weight / (height_m * height_m), 2)


def mean_rating(total: int, count: int) -> Decimal:
    """Mean score rounded to 2 decimal places, zero when nothing is rated."""
    if count == 0:
        return Decimal("0.00")
    return (Decimal(total) / Decimal(count)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
