from datetime import UTC, date, datetime, time
from uuid import uuid4

import pytest

from app.core import db
from app.models import Appointment, AppointmentStatus
from app.services import notification_service

pytestmark = pytest.mark.anyio


@pytest.fixture
def outbox(session_maker, monkeypatch):
    calls: list[tuple[str, dict]] = []
    monkeypatch.setattr(db, "async_session_maker", session_maker)
    monkeypatch.setattr(
        notification_service,
        "send_appointment_confirmation_email",
        lambda **kwargs: calls.append(("confirmed", kwargs)),
    )
    monkeypatch.setattr(
        notification_service,
        "send_appointment_cancellation_email",
        lambda **kwargs: calls.append(("cancelled", kwargs)),
    )
    return calls


async def _stored(session_maker, seed, **fields) -> Appointment:
    appointment = Appointment(
        user_id=seed.u1.id,
        professional_id=seed.p1.id,
        procedure="Massagem",
        appointment_date=date(2025, 3, 10),
        appointment_time=time(9, 0),
        **fields,
    )
    async with session_maker() as s:
        s.add(appointment)
        await s.commit()
    return appointment


async def test_confirmation_goes_to_the_booking_user(session_maker, seed, outbox):
    appointment = await _stored(session_maker, seed)
    await notification_service.notify_booking_confirmed(appointment.id)

    assert len(outbox) == 1
    kind, sent = outbox[0]
    assert kind == "confirmed"
    assert sent["to_email"] == seed.u1.email
    assert sent["professional_name"] == seed.p1.name
    assert sent["appointment_time"] == time(9, 0)


@pytest.mark.parametrize(
    "cancelled_at, same_day",
    [(datetime(2025, 3, 10, 7, 30, tzinfo=UTC), True), (datetime(2025, 3, 8, 12, tzinfo=UTC), False)],
)
async def test_cancellation_marks_same_day(session_maker, seed, outbox, cancelled_at, same_day):
    appointment = await _stored(
        session_maker, seed, status=AppointmentStatus.CANCELLED.value, cancelled_at=cancelled_at
    )
    await notification_service.notify_booking_cancelled(appointment.id)
    assert outbox == [("cancelled", outbox[0][1])]
    assert outbox[0][1]["same_day"] is same_day


async def test_missing_appointment_sends_nothing(session_maker, seed, outbox):
    await notification_service.notify_booking_confirmed(uuid4())
    await notification_service.notify_booking_cancelled(uuid4())
    assert outbox == []


async def test_lookup_failure_is_swallowed(seed, outbox, monkeypatch):
    def broken():
        raise RuntimeError("pool exhausted")

    monkeypatch.setattr(db, "async_session_maker", broken)
    await notification_service.notify_booking_confirmed(uuid4())
    assert outbox == []
