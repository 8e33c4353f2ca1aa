"""HTTP client for the booking API that follows the conflict recovery rules.

* A 409 means the slot list the caller rendered is stale. The client reloads
  the booked slots for that professional and day and raises ``SlotTaken`` with
  the fresh set. It never picks another slot on its own.
* A timeout after the request went out leaves the outcome unknown: the insert
  may have committed. ``BookingOutcomeUnknown`` tells the caller to look again
  (``find_my_booking``) instead of assuming failure.
* Availability that cannot be loaded is treated as fully booked.
"""
import logging
from datetime import date
from uuid import UUID

import httpx

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


class BookingClientError(Exception):
    pass


class SlotTaken(BookingClientError):
    def __init__(self, slot: str, booked_slots: set[str] | None) -> None:
        super().__init__(f"Slot {slot} was just taken")
        self.slot = slot
        # None when the reload itself failed; render nothing as open then
        self.booked_slots = booked_slots


class BookingRejected(BookingClientError):
    """The server refused the request as invalid (422)."""


class BookingUnavailable(BookingClientError):
    """The request failed before a booking could have happened, or the API is down."""


class BookingOutcomeUnknown(BookingClientError):
    def __init__(self, professional_id: UUID, day: date, slot: str) -> None:
        super().__init__(f"No answer for booking {day.isoformat()} {slot}; outcome unknown")
        self.professional_id = professional_id
        self.day = day
        self.slot = slot


class BookingClient:
    def __init__(
        self,
        base_url: str,
        access_token: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Authorization": f"Bearer {access_token}"} if access_token else {}
        self._client = httpx.AsyncClient(
            base_url=base_url, headers=headers, timeout=timeout, transport=transport
        )

    async def __aenter__(self) -> "BookingClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def booked_slots(self, professional_id: UUID, day: date) -> set[str]:
        try:
            resp = await self._client.get(
                f"{API_PREFIX}/slots/booked",
                params={"professional_id": str(professional_id), "date": day.isoformat()},
            )
        except httpx.HTTPError as e:
            raise BookingUnavailable(f"Availability request failed: {e}") from e
        if resp.status_code != 200:
            raise BookingUnavailable(f"Availability request failed: status={resp.status_code}")
        return set(resp.json()["booked_slots"])

    async def open_slots(self, professional_id: UUID, day: date, catalog: list[str]) -> list[str]:
        """Catalog slots not yet booked. Empty when availability can't be loaded."""
        try:
            booked = await self.booked_slots(professional_id, day)
        except BookingUnavailable:
            logger.warning("Availability unavailable for %s on %s, showing no open slots", professional_id, day)
            return []
        return [s for s in catalog if s not in booked]

    async def book(
        self,
        professional_id: UUID,
        day: date,
        slot: str,
        procedure: str,
        specialty_id: UUID | None = None,
        notes: str | None = None,
    ) -> dict:
        payload = {
            "professional_id": str(professional_id),
            "date": day.isoformat(),
            "time": slot,
            "procedure": procedure,
            "specialty_id": str(specialty_id) if specialty_id else None,
            "notes": notes,
        }
        try:
            resp = await self._client.post(f"{API_PREFIX}/appointments", json=payload)
        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            raise BookingUnavailable(f"Could not reach booking API: {e}") from e
        except (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError) as e:
            raise BookingOutcomeUnknown(professional_id, day, slot) from e

        if resp.status_code == 201:
            return resp.json()
        if resp.status_code == 409:
            try:
                fresh = await self.booked_slots(professional_id, day)
            except BookingUnavailable:
                fresh = None
            raise SlotTaken(slot, fresh)
        if resp.status_code == 422:
            raise BookingRejected(str(resp.json().get("detail")))
        raise BookingUnavailable(f"Booking failed: status={resp.status_code}")

    async def find_my_booking(self, professional_id: UUID, day: date, slot: str) -> dict | None:
        """The caller's active appointment in that slot, if one exists."""
        try:
            resp = await self._client.get(f"{API_PREFIX}/appointments", params={"from_date": day.isoformat()})
        except httpx.HTTPError as e:
            raise BookingUnavailable(f"Appointments request failed: {e}") from e
        if resp.status_code != 200:
            raise BookingUnavailable(f"Appointments request failed: status={resp.status_code}")
        for a in resp.json():
            if (
                a["professional_id"] == str(professional_id)
                and a["date"] == day.isoformat()
                and a["time"] == slot
                and a["status"] != "cancelled"
            ):
                return a
        return None
