import logging
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import (
    AppointmentNotFound,
    BookingValidationError,
    PermissionDenied,
    SlotConflict,
    StorageError,
)
from app.models.appointment import (
    ACTIVE_SLOT_COLUMNS,
    ACTIVE_SLOT_INDEX,
    Appointment,
    AppointmentCreate,
    AppointmentStatus,
)
from app.models.common import utc_now
from app.models.professional import Professional
from app.models.user import User
from app.services.calendar_service import check_user_may_book, day_closed_reason, is_past_slot
from app.services.directory_service import get_professional
from app.services.slot_service import format_slot, is_catalog_slot

logger = logging.getLogger(__name__)

_UNIQUE_VIOLATION = "23505"
_SQLITE_SLOT_MESSAGE = "UNIQUE constraint failed: " + ", ".join(
    f"appointments.{c}" for c in ACTIVE_SLOT_COLUMNS
)


def is_slot_conflict(exc: IntegrityError) -> bool:
    """True when the violated constraint is the active-slot unique index.

    Other integrity failures (foreign keys, check constraints) are not conflicts.
    """
    orig = exc.orig
    message = str(orig)
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code == _UNIQUE_VIOLATION:
        constraint = getattr(orig, "constraint_name", None)
        return constraint == ACTIVE_SLOT_INDEX or ACTIVE_SLOT_INDEX in message
    return _SQLITE_SLOT_MESSAGE in message


async def validate_booking_request(
    session: AsyncSession, user_id: UUID | None, data: AppointmentCreate
) -> None:
    """Reject a booking that must not reach the insert.

    Field checks come first and touch no storage. Then the calendar and account
    rules: the professional must be active, the day open and inside the booking
    window, the slot not yet started, and the user neither suspended nor blocked
    from the specialty. An unknown professional is left to the foreign key.
    """
    if user_id is None:
        raise BookingValidationError("user is required")
    if data.professional_id is None:
        raise BookingValidationError("professional_id is required")
    if data.appointment_date is None:
        raise BookingValidationError("date is required")
    if data.appointment_time is None:
        raise BookingValidationError("time is required")
    if data.appointment_time.tzinfo is not None:
        raise BookingValidationError("time must be a clinic-local time without a UTC offset")
    procedure = (data.procedure or "").strip()
    if not procedure:
        raise BookingValidationError("procedure is required")
    if len(procedure) > settings.max_procedure_length:
        raise BookingValidationError(
            f"procedure must be {settings.max_procedure_length} characters or fewer"
        )
    if not is_catalog_slot(data.appointment_time):
        offered = ", ".join(format_slot(t) for t in settings.slot_times_list)
        raise BookingValidationError(
            f"time {data.appointment_time.isoformat()} is not a bookable slot ({offered})"
        )

    try:
        professional = await get_professional(session, data.professional_id)
        user = await session.get(User, user_id)
    except SQLAlchemyError as e:
        raise StorageError("Could not load booking details") from e
    if professional is not None and not professional.active:
        raise BookingValidationError("professional is not accepting bookings")
    closed = await day_closed_reason(session, data.professional_id, data.appointment_date)
    if closed:
        raise BookingValidationError(f"{data.appointment_date.isoformat()} is not bookable: {closed}")
    if is_past_slot(data.appointment_date, data.appointment_time):
        raise BookingValidationError("this time has already passed")
    if user is not None:
        await check_user_may_book(session, user, data.specialty_id)


async def _commit_slot_change(session: AsyncSession, appointment: Appointment) -> None:
    """Commit, turning a hit on the active-slot index into SlotConflict."""
    # Rollback expires the instance, read the slot first
    slot = (appointment.professional_id, appointment.appointment_date, appointment.appointment_time)
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        if is_slot_conflict(e):
            logger.info(
                "Slot conflict: professional=%s date=%s time=%s",
                slot[0],
                slot[1],
                format_slot(slot[2]),
            )
            raise SlotConflict(*slot) from e
        logger.exception("Appointment write rejected by the database")
        raise StorageError("Appointment could not be saved") from e
    except SQLAlchemyError as e:
        await session.rollback()
        logger.exception("Appointment write failed")
        raise StorageError("Appointment could not be saved") from e


async def create_appointment(
    session: AsyncSession, user_id: UUID, data: AppointmentCreate
) -> Appointment:
    """Claim a slot with a single insert.

    Raises BookingValidationError or PermissionDenied before the insert,
    SlotConflict when an active appointment already holds the slot, StorageError
    otherwise (including an unknown professional or user).
    """
    await validate_booking_request(session, user_id, data)
    appointment = Appointment(
        user_id=user_id,
        professional_id=data.professional_id,
        specialty_id=data.specialty_id,
        procedure=data.procedure.strip(),
        appointment_date=data.appointment_date,
        appointment_time=data.appointment_time,
        status=AppointmentStatus.SCHEDULED.value,
        notes=data.notes,
    )
    session.add(appointment)
    await _commit_slot_change(session, appointment)
    logger.info(
        "Appointment %s booked: professional=%s date=%s time=%s",
        appointment.id,
        appointment.professional_id,
        appointment.appointment_date,
        format_slot(appointment.appointment_time),
    )
    return appointment


async def get_appointment(session: AsyncSession, appointment_id: UUID) -> Appointment:
    try:
        appointment = await session.get(Appointment, appointment_id)
    except SQLAlchemyError as e:
        raise StorageError("Could not load appointment") from e
    if appointment is None:
        raise AppointmentNotFound("Appointment not found")
    return appointment


async def _professional_for_user(session: AsyncSession, user_id: UUID) -> Professional | None:
    result = await session.execute(select(Professional).where(Professional.user_id == user_id))
    return result.scalar_one_or_none()


async def _ensure_can_manage(session: AsyncSession, appointment: Appointment, actor: User) -> None:
    """Admins manage everything; a professional only their own agenda."""
    if actor.is_admin:
        return
    if actor.is_staff:
        professional = await _professional_for_user(session, actor.id)
        if professional and professional.id == appointment.professional_id:
            return
    raise PermissionDenied("Not allowed to manage this appointment")


async def cancel_appointment(
    session: AsyncSession, appointment_id: UUID, actor: User, reason: str | None = None
) -> Appointment:
    appointment = await get_appointment(session, appointment_id)
    if appointment.user_id != actor.id:
        await _ensure_can_manage(session, appointment, actor)
    if appointment.status != AppointmentStatus.SCHEDULED.value:
        raise BookingValidationError(f"Only scheduled appointments can be cancelled (status: {appointment.status})")
    now = utc_now()
    appointment.status = AppointmentStatus.CANCELLED.value
    appointment.cancel_reason = (reason or "").strip() or None
    appointment.cancelled_at = now
    appointment.updated_at = now
    session.add(appointment)
    await _commit_slot_change(session, appointment)
    logger.info("Appointment %s cancelled by %s", appointment.id, actor.id)
    return appointment


async def update_appointment_status(
    session: AsyncSession,
    appointment_id: UUID,
    actor: User,
    new_status: AppointmentStatus,
    reason: str | None = None,
) -> Appointment:
    """Staff status change.

    Moving a cancelled appointment back to an active status makes the slot
    index apply again, so it can fail with SlotConflict like a new booking.
    """
    appointment = await get_appointment(session, appointment_id)
    await _ensure_can_manage(session, appointment, actor)
    status = AppointmentStatus(new_status)
    if appointment.status == status.value:
        return appointment
    now = utc_now()
    appointment.status = status.value
    appointment.updated_at = now
    if status is AppointmentStatus.CANCELLED:
        appointment.cancelled_at = now
        appointment.cancel_reason = (reason or "").strip() or None
    else:
        appointment.cancelled_at = None
        appointment.cancel_reason = None
    appointment.completed_at = now if status is AppointmentStatus.COMPLETED else None
    session.add(appointment)
    await _commit_slot_change(session, appointment)
    logger.info("Appointment %s set to %s by %s", appointment.id, status.value, actor.id)
    return appointment


async def list_appointments_for_user(
    session: AsyncSession, user_id: UUID, from_date: date | None = None
) -> list[Appointment]:
    q = (
        select(Appointment)
        .where(Appointment.user_id == user_id)
        .order_by(Appointment.appointment_date, Appointment.appointment_time)
    )
    if from_date:
        q = q.where(Appointment.appointment_date >= from_date)
    try:
        result = await session.execute(q)
    except SQLAlchemyError as e:
        raise StorageError("Could not load appointments") from e
    return list(result.scalars().all())


async def list_managed_appointments(
    session: AsyncSession,
    actor: User,
    status: AppointmentStatus | None = None,
    professional_id: UUID | None = None,
    on_date: date | None = None,
) -> list[Appointment]:
    if not actor.is_staff:
        raise PermissionDenied("Staff only")
    q = select(Appointment).order_by(Appointment.appointment_date, Appointment.appointment_time)
    try:
        if not actor.is_admin:
            professional = await _professional_for_user(session, actor.id)
            if professional is None:
                return []
            q = q.where(Appointment.professional_id == professional.id)
        if professional_id:
            q = q.where(Appointment.professional_id == professional_id)
        if status:
            q = q.where(Appointment.status == AppointmentStatus(status).value)
        if on_date:
            q = q.where(Appointment.appointment_date == on_date)
        result = await session.execute(q)
    except SQLAlchemyError as e:
        raise StorageError("Could not load appointments") from e
    return list(result.scalars().all())
