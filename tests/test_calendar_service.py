from datetime import date, datetime, time, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from app.core.config import settings
from app.core.errors import BookingValidationError, StorageError
from app.models import AvailableDayCreate, BlockedDayCreate
from app.services.calendar_service import (
    add_available_day,
    add_blocked_day,
    booking_window,
    day_closed_reason,
    is_past_slot,
    list_blocked_days,
    local_date,
    remove_blocked_day,
)
from tests.conftest import FROZEN_NOW

pytestmark = pytest.mark.anyio

MONDAY = FROZEN_NOW.date()
TUESDAY = date(2025, 6, 10)
WEDNESDAY = date(2025, 6, 11)


def test_booking_window_is_thirty_days_from_today():
    assert booking_window() == (MONDAY, date(2025, 7, 9))


def test_past_slot_compares_against_clinic_time():
    assert is_past_slot(MONDAY, time(8, 0))
    assert not is_past_slot(MONDAY, time(9, 0))
    assert is_past_slot(date(2025, 6, 8), time(16, 0))
    assert not is_past_slot(TUESDAY, time(0, 0))


def test_local_date_follows_clinic_timezone(monkeypatch):
    late_evening_utc = datetime(2025, 6, 10, 23, 30)
    assert local_date(late_evening_utc) == TUESDAY
    monkeypatch.setattr(settings, "clinic_timezone", "America/Sao_Paulo")
    assert local_date(late_evening_utc) == TUESDAY
    monkeypatch.setattr(settings, "clinic_timezone", "Asia/Tokyo")
    assert local_date(late_evening_utc) == WEDNESDAY


async def test_open_weekday_inside_window(session, seed):
    assert await day_closed_reason(session, seed.p1.id, MONDAY) is None
    assert await day_closed_reason(session, seed.p1.id, TUESDAY) is None


async def test_holidays_close_the_clinic(session, seed, monkeypatch):
    monkeypatch.setattr(settings, "holidays", "2025-06-19, 2025-12-25")
    assert await day_closed_reason(session, seed.p1.id, date(2025, 6, 19)) == "the clinic is closed for a holiday"
    assert await day_closed_reason(session, seed.p1.id, date(2025, 6, 18)) is None


async def test_closed_weekdays_are_configurable(session, seed, monkeypatch):
    saturday = date(2025, 6, 14)
    assert await day_closed_reason(session, seed.p1.id, saturday) == "the clinic is closed on this weekday"
    monkeypatch.setattr(settings, "closed_weekdays", "6")
    assert await day_closed_reason(session, seed.p1.id, saturday) is None


async def test_blocked_day_for_one_professional(session, seed):
    await add_blocked_day(session, BlockedDayCreate(day=TUESDAY, professional_id=seed.p1.id, reason=" congress "))
    await session.commit()

    assert await day_closed_reason(session, seed.p1.id, TUESDAY) == "this day is blocked"
    assert await day_closed_reason(session, seed.p2.id, TUESDAY) is None
    [row] = await list_blocked_days(session, professional_id=seed.p1.id)
    assert row.reason == "congress"


async def test_clinic_wide_blocked_day_and_removal(session, seed):
    row = await add_blocked_day(session, BlockedDayCreate(day=WEDNESDAY))
    await session.commit()
    assert await day_closed_reason(session, seed.p1.id, WEDNESDAY) == "this day is blocked"
    assert await day_closed_reason(session, seed.p2.id, WEDNESDAY) == "this day is blocked"

    assert await remove_blocked_day(session, row.id)
    await session.commit()
    assert await day_closed_reason(session, seed.p2.id, WEDNESDAY) is None
    assert not await remove_blocked_day(session, row.id)


async def test_available_days_restrict_the_professional(session, seed):
    await add_available_day(session, AvailableDayCreate(professional_id=seed.p1.id, day=WEDNESDAY))
    await session.commit()

    assert await day_closed_reason(session, seed.p1.id, WEDNESDAY) is None
    assert await day_closed_reason(session, seed.p1.id, TUESDAY) == "the professional does not work on this day"
    # Professionals without configured days keep every open day
    assert await day_closed_reason(session, seed.p2.id, TUESDAY) is None


async def test_available_days_outside_window_do_not_restrict(session, seed):
    await add_available_day(session, AvailableDayCreate(professional_id=seed.p1.id, day=MONDAY + timedelta(days=60)))
    await session.commit()
    assert await day_closed_reason(session, seed.p1.id, TUESDAY) is None


async def test_duplicate_available_day_is_validation_error(session_maker, seed):
    async with session_maker() as s:
        await add_available_day(s, AvailableDayCreate(professional_id=seed.p1.id, day=WEDNESDAY))
        await s.commit()
    async with session_maker() as s:
        with pytest.raises(BookingValidationError):
            await add_available_day(s, AvailableDayCreate(professional_id=seed.p1.id, day=WEDNESDAY))


async def test_calendar_lookup_failure_is_storage_error(session, seed, monkeypatch):
    async def failing_execute(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(session, "execute", failing_execute)
    with pytest.raises(StorageError):
        await day_closed_reason(session, seed.p1.id, TUESDAY)
