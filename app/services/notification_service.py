"""Post-commit notifications. Run as background tasks; never affect the booking."""
import asyncio
import logging
from uuid import UUID

from app.core import db
from app.models.appointment import Appointment
from app.models.common import utc_now
from app.models.professional import Professional
from app.models.user import User
from app.services.calendar_service import local_date
from app.services.email_service import (
    send_appointment_cancellation_email,
    send_appointment_confirmation_email,
)

logger = logging.getLogger(__name__)


async def _load(appointment_id: UUID) -> tuple[Appointment, User, Professional | None] | None:
    async with db.async_session_maker() as session:
        appointment = await session.get(Appointment, appointment_id)
        if appointment is None:
            return None
        user = await session.get(User, appointment.user_id)
        if user is None:
            return None
        professional = await session.get(Professional, appointment.professional_id)
        return appointment, user, professional


async def notify_booking_confirmed(appointment_id: UUID) -> None:
    try:
        loaded = await _load(appointment_id)
        if loaded is None:
            logger.warning("Confirmation skipped: appointment %s not found", appointment_id)
            return
        appointment, user, professional = loaded
        await asyncio.to_thread(
            send_appointment_confirmation_email,
            to_email=user.email,
            recipient_name=user.name,
            procedure=appointment.procedure,
            professional_name=professional.name if professional else "",
            appointment_date=appointment.appointment_date,
            appointment_time=appointment.appointment_time,
        )
    except Exception as e:
        logger.exception("Booking confirmation for %s failed: %s", appointment_id, e)


async def notify_booking_cancelled(appointment_id: UUID) -> None:
    try:
        loaded = await _load(appointment_id)
        if loaded is None:
            logger.warning("Cancellation notice skipped: appointment %s not found", appointment_id)
            return
        appointment, user, _ = loaded
        cancelled_on = local_date(appointment.cancelled_at or utc_now())
        await asyncio.to_thread(
            send_appointment_cancellation_email,
            to_email=user.email,
            recipient_name=user.name,
            procedure=appointment.procedure,
            appointment_date=appointment.appointment_date,
            appointment_time=appointment.appointment_time,
            same_day=cancelled_on == appointment.appointment_date,
        )
    except Exception as e:
        logger.exception("Cancellation notice for %s failed: %s", appointment_id, e)
