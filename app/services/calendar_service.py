"""Booking calendar: which days open for booking and who may book them.

Dates are clinic-local. Storage failures surface as StorageError so a lookup
problem never reads as an open day.
"""
import logging
from datetime import date, datetime, time, timedelta
from uuid import UUID

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import BookingValidationError, PermissionDenied, StorageError
from app.models.calendar import (
    AvailableDay,
    AvailableDayCreate,
    BlockedDay,
    BlockedDayCreate,
    SpecialtyBlockCreate,
    UserSpecialtyBlock,
)
from app.models.common import as_utc, utc_now
from app.models.user import User

logger = logging.getLogger(__name__)


def clinic_now() -> datetime:
    return utc_now().astimezone(settings.clinic_zone)


def local_date(moment: datetime) -> date:
    """Clinic-local calendar date of a UTC moment."""
    return as_utc(moment).astimezone(settings.clinic_zone).date()


def booking_window() -> tuple[date, date]:
    today = clinic_now().date()
    return today, today + timedelta(days=settings.booking_window_days)


def is_past_slot(d: date, t: time) -> bool:
    now = clinic_now()
    return (d, t.replace(tzinfo=None)) <= (now.date(), now.time())


async def day_closed_reason(session: AsyncSession, professional_id: UUID, d: date) -> str | None:
    """Why nobody can book this professional on `d`, or None when the day is open."""
    first, last = booking_window()
    if d < first:
        return "date is in the past"
    if d > last:
        return f"date is more than {settings.booking_window_days} days ahead"
    if d.weekday() in settings.closed_weekdays_set:
        return "the clinic is closed on this weekday"
    if d in settings.holidays_set:
        return "the clinic is closed for a holiday"
    try:
        blocked = await session.execute(
            select(BlockedDay.id)
            .where(
                BlockedDay.day == d,
                or_(BlockedDay.professional_id == professional_id, BlockedDay.professional_id.is_(None)),
            )
            .limit(1)
        )
        if blocked.first() is not None:
            return "this day is blocked"
        result = await session.execute(
            select(AvailableDay.day).where(
                AvailableDay.professional_id == professional_id,
                AvailableDay.day >= first,
                AvailableDay.day <= last,
            )
        )
        working_days = {row[0] for row in result.all()}
    except SQLAlchemyError as e:
        logger.exception("Calendar lookup failed for professional=%s date=%s", professional_id, d)
        raise StorageError("Could not load the calendar") from e
    # No configured days means the professional works every open day
    if working_days and d not in working_days:
        return "the professional does not work on this day"
    return None


async def check_user_may_book(session: AsyncSession, user: User, specialty_id: UUID | None) -> None:
    """Suspended users and users blocked from the specialty may not book."""
    now = clinic_now()
    if user.suspended_until is not None and as_utc(user.suspended_until) > now:
        raise PermissionDenied("Account is suspended from booking")
    if specialty_id is None:
        return
    try:
        result = await session.execute(
            select(UserSpecialtyBlock.blocked_until).where(
                UserSpecialtyBlock.user_id == user.id,
                UserSpecialtyBlock.specialty_id == specialty_id,
            )
        )
        blocked_until = result.scalar_one_or_none()
    except SQLAlchemyError as e:
        raise StorageError("Could not load booking restrictions") from e
    if blocked_until is not None and as_utc(blocked_until) > now:
        raise PermissionDenied("Booking this specialty is blocked for this account")


async def list_blocked_days(
    session: AsyncSession, professional_id: UUID | None = None, from_date: date | None = None
) -> list[BlockedDay]:
    q = select(BlockedDay).order_by(BlockedDay.day)
    if professional_id:
        q = q.where(BlockedDay.professional_id == professional_id)
    if from_date:
        q = q.where(BlockedDay.day >= from_date)
    result = await session.execute(q)
    return list(result.scalars().all())


async def add_blocked_day(session: AsyncSession, data: BlockedDayCreate) -> BlockedDay:
    row = BlockedDay(
        day=data.day,
        professional_id=data.professional_id,
        reason=(data.reason or "").strip() or None,
    )
    session.add(row)
    await _flush(session, "Unknown professional")
    logger.info("Day %s blocked (professional: %s)", row.day, row.professional_id or "all")
    return row


async def remove_blocked_day(session: AsyncSession, blocked_day_id: UUID) -> bool:
    result = await session.execute(delete(BlockedDay).where(BlockedDay.id == blocked_day_id))
    return result.rowcount > 0


async def list_available_days(
    session: AsyncSession, professional_id: UUID, from_date: date | None = None
) -> list[AvailableDay]:
    q = select(AvailableDay).where(AvailableDay.professional_id == professional_id).order_by(AvailableDay.day)
    if from_date:
        q = q.where(AvailableDay.day >= from_date)
    result = await session.execute(q)
    return list(result.scalars().all())


async def add_available_day(session: AsyncSession, data: AvailableDayCreate) -> AvailableDay:
    row = AvailableDay(professional_id=data.professional_id, day=data.day)
    session.add(row)
    await _flush(session, "Unknown professional or day already available")
    return row


async def remove_available_day(session: AsyncSession, available_day_id: UUID) -> bool:
    result = await session.execute(delete(AvailableDay).where(AvailableDay.id == available_day_id))
    return result.rowcount > 0


async def list_specialty_blocks(session: AsyncSession, user_id: UUID | None = None) -> list[UserSpecialtyBlock]:
    q = select(UserSpecialtyBlock).order_by(UserSpecialtyBlock.blocked_until)
    if user_id:
        q = q.where(UserSpecialtyBlock.user_id == user_id)
    result = await session.execute(q)
    return list(result.scalars().all())


async def set_specialty_block(session: AsyncSession, data: SpecialtyBlockCreate) -> UserSpecialtyBlock:
    """Create or extend the block for this user and specialty."""
    result = await session.execute(
        select(UserSpecialtyBlock).where(
            UserSpecialtyBlock.user_id == data.user_id,
            UserSpecialtyBlock.specialty_id == data.specialty_id,
        )
    )
    row = result.scalar_one_or_none()
    blocked_until = as_utc(data.blocked_until)
    if row is None:
        row = UserSpecialtyBlock(user_id=data.user_id, specialty_id=data.specialty_id, blocked_until=blocked_until)
    row.blocked_until = blocked_until
    row.reason = (data.reason or "").strip() or None
    session.add(row)
    await _flush(session, "Unknown user or specialty")
    logger.info("User %s blocked from specialty %s until %s", row.user_id, row.specialty_id, row.blocked_until)
    return row


async def remove_specialty_block(session: AsyncSession, block_id: UUID) -> bool:
    result = await session.execute(delete(UserSpecialtyBlock).where(UserSpecialtyBlock.id == block_id))
    return result.rowcount > 0


async def _flush(session: AsyncSession, message: str) -> None:
    try:
        await session.flush()
    except IntegrityError as e:
        await session.rollback()
        raise BookingValidationError(message) from e
