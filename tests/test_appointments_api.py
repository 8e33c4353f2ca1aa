from uuid import uuid4

import pytest

from app.api.routes import slots as slots_routes
from app.core.errors import StorageError
from app.services import notification_service
from tests.conftest import auth_headers

pytestmark = pytest.mark.anyio

DAY = "2025-06-10"


@pytest.fixture
def sent(monkeypatch):
    """Record notification emails instead of sending them."""
    calls: list[tuple[str, dict]] = []

    def confirmation(**kwargs):
        calls.append(("confirmed", kwargs))
        return True

    def cancellation(**kwargs):
        calls.append(("cancelled", kwargs))
        return True

    monkeypatch.setattr(notification_service, "send_appointment_confirmation_email", confirmation)
    monkeypatch.setattr(notification_service, "send_appointment_cancellation_email", cancellation)
    return calls


def _booking(professional_id, time="09:00", procedure="Massagem") -> dict:
    return {"professional_id": str(professional_id), "date": DAY, "time": time, "procedure": procedure}


async def _booked(client, professional_id) -> list[str]:
    resp = await client.get(
        "/api/v1/slots/booked", params={"professional_id": str(professional_id), "date": DAY}
    )
    assert resp.status_code == 200
    return resp.json()["booked_slots"]


async def test_booking_then_conflict(client, seed, sent):
    resp = await client.post("/api/v1/appointments", json=_booking(seed.p1.id), headers=auth_headers(seed.u1))
    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "scheduled"
    assert body["date"] == DAY
    assert body["time"] == "09:00"
    assert body["user_id"] == str(seed.u1.id)

    resp = await client.post("/api/v1/appointments", json=_booking(seed.p1.id), headers=auth_headers(seed.u2))
    assert resp.status_code == 409
    body = resp.json()
    assert body["code"] == "slot_conflict"
    assert body["slot"] == {"professional_id": str(seed.p1.id), "date": DAY, "time": "09:00"}

    assert await _booked(client, seed.p1.id) == ["09:00"]
    assert [kind for kind, _ in sent] == ["confirmed"]
    assert sent[0][1]["to_email"] == "u1@example.com"
    assert sent[0][1]["professional_name"] == "Dr. Silva"


async def test_cancel_frees_slot_for_next_user(client, seed, sent):
    resp = await client.post("/api/v1/appointments", json=_booking(seed.p1.id), headers=auth_headers(seed.u1))
    appointment_id = resp.json()["id"]

    resp = await client.patch(
        f"/api/v1/appointments/{appointment_id}/cancel",
        json={"reason": "sick"},
        headers=auth_headers(seed.u1),
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"
    assert resp.json()["cancel_reason"] == "sick"
    assert await _booked(client, seed.p1.id) == []

    resp = await client.post("/api/v1/appointments", json=_booking(seed.p1.id), headers=auth_headers(seed.u2))
    assert resp.status_code == 201
    assert [kind for kind, _ in sent] == ["confirmed", "cancelled", "confirmed"]


async def test_cancel_without_body(client, seed, sent):
    resp = await client.post("/api/v1/appointments", json=_booking(seed.p1.id), headers=auth_headers(seed.u1))
    resp = await client.patch(f"/api/v1/appointments/{resp.json()['id']}/cancel", headers=auth_headers(seed.u1))
    assert resp.status_code == 200
    assert resp.json()["cancel_reason"] is None


async def test_off_catalog_time_is_validation_error(client, seed, sent):
    resp = await client.post(
        "/api/v1/appointments", json=_booking(seed.p1.id, time="09:30"), headers=auth_headers(seed.u1)
    )
    assert resp.status_code == 422
    assert resp.json()["code"] == "validation_error"
    assert await _booked(client, seed.p1.id) == []
    assert sent == []


async def test_malformed_request_is_rejected(client, seed, sent):
    payload = _booking(seed.p1.id)
    payload["date"] = "10/03/2025"
    resp = await client.post("/api/v1/appointments", json=payload, headers=auth_headers(seed.u1))
    assert resp.status_code == 422

    resp = await client.post(
        "/api/v1/appointments", json=_booking(seed.p1.id, procedure=""), headers=auth_headers(seed.u1)
    )
    assert resp.status_code == 422


async def test_booking_requires_authentication(client, seed):
    resp = await client.post("/api/v1/appointments", json=_booking(seed.p1.id))
    assert resp.status_code == 401

    resp = await client.post(
        "/api/v1/appointments", json=_booking(seed.p1.id), headers={"Authorization": "Bearer not-a-token"}
    )
    assert resp.status_code == 401


async def test_notification_failure_does_not_affect_booking(client, seed, monkeypatch):
    def broken(**kwargs):
        raise RuntimeError("smtp down")

    monkeypatch.setattr(notification_service, "send_appointment_confirmation_email", broken)
    resp = await client.post("/api/v1/appointments", json=_booking(seed.p1.id), headers=auth_headers(seed.u1))
    assert resp.status_code == 201
    assert await _booked(client, seed.p1.id) == ["09:00"]


async def test_available_slots(client, seed, sent):
    await client.post(
        "/api/v1/appointments", json=_booking(seed.p1.id, time="15:00"), headers=auth_headers(seed.u1)
    )
    resp = await client.get(
        "/api/v1/slots/available", params={"professional_id": str(seed.p1.id), "date": DAY}
    )
    assert resp.status_code == 200
    slots = resp.json()["slots"]
    assert len(slots) == 8
    assert [s["time"] for s in slots if not s["available"]] == ["15:00"]


async def test_availability_failure_is_503_not_empty(client, seed, monkeypatch):
    async def failing(*args, **kwargs):
        raise StorageError("Could not load availability")

    monkeypatch.setattr(slots_routes, "get_booked_slots", failing)
    resp = await client.get("/api/v1/slots/booked", params={"professional_id": str(seed.p1.id), "date": DAY})
    assert resp.status_code == 503
    assert resp.json()["code"] == "storage_error"


async def test_my_appointments(client, seed, sent):
    await client.post("/api/v1/appointments", json=_booking(seed.p1.id), headers=auth_headers(seed.u1))
    await client.post("/api/v1/appointments", json=_booking(seed.p2.id), headers=auth_headers(seed.u2))

    resp = await client.get("/api/v1/appointments", params={"from_date": DAY}, headers=auth_headers(seed.u1))
    assert resp.status_code == 200
    assert [a["professional_id"] for a in resp.json()] == [str(seed.p1.id)]


async def test_manage_listing_permissions(client, seed, sent):
    await client.post("/api/v1/appointments", json=_booking(seed.p1.id), headers=auth_headers(seed.u1))
    await client.post("/api/v1/appointments", json=_booking(seed.p2.id), headers=auth_headers(seed.u1))

    resp = await client.get("/api/v1/appointments/manage", headers=auth_headers(seed.u1))
    assert resp.status_code == 403

    resp = await client.get("/api/v1/appointments/manage", headers=auth_headers(seed.admin))
    assert len(resp.json()) == 2

    resp = await client.get(
        "/api/v1/appointments/manage", params={"date": DAY}, headers=auth_headers(seed.pro_user)
    )
    assert [a["professional_id"] for a in resp.json()] == [str(seed.p1.id)]


async def test_status_change(client, seed, sent):
    resp = await client.post("/api/v1/appointments", json=_booking(seed.p1.id), headers=auth_headers(seed.u1))
    url = f"/api/v1/appointments/{resp.json()['id']}/status"

    resp = await client.patch(url, json={"status": "completed"}, headers=auth_headers(seed.u1))
    assert resp.status_code == 403

    resp = await client.patch(url, json={"status": "completed"}, headers=auth_headers(seed.pro_user))
    assert resp.status_code == 200
    assert resp.json()["completed_at"] is not None

    resp = await client.patch(url, json={"status": "archived"}, headers=auth_headers(seed.admin))
    assert resp.status_code == 422


async def test_reactivation_conflict_is_409(client, seed, sent):
    resp = await client.post("/api/v1/appointments", json=_booking(seed.p1.id), headers=auth_headers(seed.u1))
    first_id = resp.json()["id"]
    await client.patch(f"/api/v1/appointments/{first_id}/cancel", headers=auth_headers(seed.u1))
    resp = await client.post("/api/v1/appointments", json=_booking(seed.p1.id), headers=auth_headers(seed.u2))
    assert resp.status_code == 201

    resp = await client.patch(
        f"/api/v1/appointments/{first_id}/status", json={"status": "scheduled"}, headers=auth_headers(seed.admin)
    )
    assert resp.status_code == 409
    assert resp.json()["code"] == "slot_conflict"


async def test_unknown_appointment_is_404(client, seed):
    resp = await client.patch(f"/api/v1/appointments/{seed.p1.id}/cancel", headers=auth_headers(seed.u1))
    assert resp.status_code == 404
    assert resp.json()["code"] == "not_found"


async def test_directory(client, seed):
    resp = await client.get("/api/v1/specialties")
    assert [s["name"] for s in resp.json()] == ["Massagem"]

    resp = await client.get("/api/v1/professionals", params={"specialty_id": str(seed.specialty.id)})
    assert resp.status_code == 200
    assert [(p["name"], p["specialties"]) for p in resp.json()] == [("Dr. Silva", ["Massagem"])]

    resp = await client.get("/api/v1/professionals")
    assert sorted(p["name"] for p in resp.json()) == ["Dr. Silva", "Dra. Santos"]


async def test_admin_creates_professional(client, seed):
    payload = {"name": "Dr. Costa", "specialty_ids": [str(seed.specialty.id)]}
    resp = await client.post("/api/v1/professionals", json=payload, headers=auth_headers(seed.u1))
    assert resp.status_code == 403

    resp = await client.post("/api/v1/professionals", json=payload, headers=auth_headers(seed.admin))
    assert resp.status_code == 201
    assert resp.json()["specialties"] == ["Massagem"]
    assert resp.json()["user_id"] is None

    resp = await client.post(
        "/api/v1/professionals",
        json={"name": "Dr. Nobody", "specialty_ids": [str(seed.u1.id)]},
        headers=auth_headers(seed.admin),
    )
    assert resp.status_code == 422
    assert resp.json()["code"] == "validation_error"


async def test_health(client):
    resp = await client.get("/health")
    assert resp.json() == {"status": "ok"}


async def test_time_with_utc_offset_is_rejected(client, seed, sent):
    resp = await client.post(
        "/api/v1/appointments", json=_booking(seed.p1.id, time="09:00+05:00"), headers=auth_headers(seed.u1)
    )
    assert resp.status_code == 422
    assert resp.json()["code"] == "validation_error"
    assert await _booked(client, seed.p1.id) == []


async def test_unknown_professional_is_503(client, seed, sent):
    resp = await client.post("/api/v1/appointments", json=_booking(uuid4()), headers=auth_headers(seed.u1))
    assert resp.status_code == 503
    assert resp.json()["code"] == "storage_error"
    assert sent == []


async def test_staff_cancellation_notifies_the_user(client, seed, sent):
    resp = await client.post("/api/v1/appointments", json=_booking(seed.p1.id), headers=auth_headers(seed.u1))
    url = f"/api/v1/appointments/{resp.json()['id']}/status"

    resp = await client.patch(
        url, json={"status": "cancelled", "reason": "doctor ill"}, headers=auth_headers(seed.admin)
    )
    assert resp.status_code == 200
    assert resp.json()["cancel_reason"] == "doctor ill"
    # Repeating the same status is a no-op and sends nothing more
    resp = await client.patch(url, json={"status": "cancelled"}, headers=auth_headers(seed.admin))
    assert resp.status_code == 200

    assert [kind for kind, _ in sent] == ["confirmed", "cancelled"]
    assert sent[1][1]["to_email"] == "u1@example.com"


async def test_weekend_is_closed_for_booking_and_availability(client, seed, sent):
    saturday = "2025-06-14"
    payload = {**_booking(seed.p1.id), "date": saturday}
    resp = await client.post("/api/v1/appointments", json=payload, headers=auth_headers(seed.u1))
    assert resp.status_code == 422
    assert "not bookable" in resp.json()["detail"]

    resp = await client.get(
        "/api/v1/slots/available", params={"professional_id": str(seed.p1.id), "date": saturday}
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["closed_reason"] == "the clinic is closed on this weekday"
    assert not any(s["available"] for s in body["slots"])


async def test_past_date_is_rejected(client, seed, sent):
    payload = {**_booking(seed.p1.id), "date": "2001-01-01"}
    resp = await client.post("/api/v1/appointments", json=payload, headers=auth_headers(seed.u1))
    assert resp.status_code == 422
    assert sent == []


async def test_admin_blocks_a_day(client, seed, sent):
    body = {"day": DAY, "professional_id": str(seed.p1.id), "reason": "congress"}
    resp = await client.post("/api/v1/calendar/blocked-days", json=body, headers=auth_headers(seed.u1))
    assert resp.status_code == 403

    resp = await client.post("/api/v1/calendar/blocked-days", json=body, headers=auth_headers(seed.admin))
    assert resp.status_code == 201
    blocked_id = resp.json()["id"]

    resp = await client.get("/api/v1/calendar/blocked-days", params={"professional_id": str(seed.p1.id)})
    assert [d["day"] for d in resp.json()] == [DAY]
    resp = await client.get(
        "/api/v1/slots/available", params={"professional_id": str(seed.p1.id), "date": DAY}
    )
    assert resp.json()["closed_reason"] == "this day is blocked"
    resp = await client.post("/api/v1/appointments", json=_booking(seed.p1.id), headers=auth_headers(seed.u1))
    assert resp.status_code == 422

    resp = await client.delete(f"/api/v1/calendar/blocked-days/{blocked_id}", headers=auth_headers(seed.admin))
    assert resp.status_code == 204
    resp = await client.post("/api/v1/appointments", json=_booking(seed.p1.id), headers=auth_headers(seed.u1))
    assert resp.status_code == 201
    resp = await client.delete(f"/api/v1/calendar/blocked-days/{blocked_id}", headers=auth_headers(seed.admin))
    assert resp.status_code == 404


async def test_admin_sets_available_days(client, seed, sent):
    body = {"professional_id": str(seed.p1.id), "day": "2025-06-11"}
    resp = await client.post("/api/v1/calendar/available-days", json=body, headers=auth_headers(seed.admin))
    assert resp.status_code == 201

    resp = await client.get("/api/v1/calendar/available-days", params={"professional_id": str(seed.p1.id)})
    assert [d["day"] for d in resp.json()] == ["2025-06-11"]
    resp = await client.get(
        "/api/v1/slots/available", params={"professional_id": str(seed.p1.id), "date": DAY}
    )
    assert resp.json()["closed_reason"] == "the professional does not work on this day"

    resp = await client.post("/api/v1/calendar/available-days", json=body, headers=auth_headers(seed.admin))
    assert resp.status_code == 422


async def test_admin_blocks_user_from_specialty(client, seed, sent):
    body = {
        "user_id": str(seed.u1.id),
        "specialty_id": str(seed.specialty.id),
        "blocked_until": "2025-06-20T00:00:00Z",
    }
    resp = await client.put("/api/v1/calendar/specialty-blocks", json=body, headers=auth_headers(seed.admin))
    assert resp.status_code == 200

    payload = {**_booking(seed.p1.id), "specialty_id": str(seed.specialty.id)}
    resp = await client.post("/api/v1/appointments", json=payload, headers=auth_headers(seed.u1))
    assert resp.status_code == 403
    assert resp.json()["code"] == "forbidden"

    resp = await client.get("/api/v1/calendar/specialty-blocks", headers=auth_headers(seed.admin))
    [block] = resp.json()
    resp = await client.delete(
        f"/api/v1/calendar/specialty-blocks/{block['id']}", headers=auth_headers(seed.admin)
    )
    assert resp.status_code == 204
    resp = await client.post("/api/v1/appointments", json=payload, headers=auth_headers(seed.u1))
    assert resp.status_code == 201


async def test_admin_suspends_user(client, seed, sent):
    url = f"/api/v1/auth/users/{seed.u1.id}/suspension"
    resp = await client.put(url, json={"suspended_until": "2025-06-12T12:00:00Z"}, headers=auth_headers(seed.u2))
    assert resp.status_code == 403

    resp = await client.put(url, json={"suspended_until": "2025-06-12T12:00:00Z"}, headers=auth_headers(seed.admin))
    assert resp.status_code == 200
    assert resp.json()["suspended_until"].startswith("2025-06-12T12:00:00")

    resp = await client.post("/api/v1/appointments", json=_booking(seed.p1.id), headers=auth_headers(seed.u1))
    assert resp.status_code == 403

    resp = await client.put(url, json={"suspended_until": None}, headers=auth_headers(seed.admin))
    assert resp.status_code == 200
    resp = await client.post("/api/v1/appointments", json=_booking(seed.p1.id), headers=auth_headers(seed.u1))
    assert resp.status_code == 201
