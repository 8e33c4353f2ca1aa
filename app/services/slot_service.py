import logging
from datetime import date, time
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import StorageError
from app.models.appointment import Appointment, AppointmentStatus
from app.services.calendar_service import day_closed_reason, is_past_slot
from app.services.directory_service import get_professional

logger = logging.getLogger(__name__)


def format_slot(t: time) -> str:
    return t.strftime("%H:%M")


def slot_catalog() -> list[time]:
    """Configured slot start times, same for every professional and day."""
    return settings.slot_times_list


def is_catalog_slot(t: time) -> bool:
    return t.second == 0 and t.microsecond == 0 and t.replace(tzinfo=None) in slot_catalog()


async def get_booked_slots(
    session: AsyncSession, professional_id: UUID, d: date
) -> set[time]:
    """Times already held by an active appointment for this professional and day.

    A point-in-time snapshot: a booking attempted afterwards can still conflict.
    """
    try:
        result = await session.execute(
            select(Appointment.appointment_time).where(
                Appointment.professional_id == professional_id,
                Appointment.appointment_date == d,
                Appointment.status != AppointmentStatus.CANCELLED.value,
            )
        )
    except SQLAlchemyError as e:
        logger.exception("Booked slot lookup failed for professional=%s date=%s", professional_id, d)
        raise StorageError("Could not load availability") from e
    return {row[0] for row in result.all()}


async def booking_closed_reason(session: AsyncSession, professional_id: UUID, d: date) -> str | None:
    """Why the whole day is unbookable for this professional, or None."""
    try:
        professional = await get_professional(session, professional_id)
    except SQLAlchemyError as e:
        raise StorageError("Could not load availability") from e
    if professional is None or not professional.active:
        return "professional is not accepting bookings"
    return await day_closed_reason(session, professional_id, d)


async def get_available_slots_for_date(
    session: AsyncSession, professional_id: UUID, d: date
) -> tuple[str | None, list[tuple[time, bool]]]:
    """Returns (closed_reason, [(slot_time, available)]) over the configured catalog.

    On a closed day every slot is unavailable; on an open one, booked and
    already-started slots are.
    """
    closed = await booking_closed_reason(session, professional_id, d)
    if closed:
        return closed, [(s, False) for s in slot_catalog()]
    booked = await get_booked_slots(session, professional_id, d)
    return None, [(s, s not in booked and not is_past_slot(d, s)) for s in slot_catalog()]
