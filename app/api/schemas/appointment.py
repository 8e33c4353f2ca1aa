from datetime import date, time
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.appointment import AppointmentStatus


class SlotInfo(BaseModel):
    time: str  # HH:MM
    available: bool


class AvailableSlotsResponse(BaseModel):
    date: date
    professional_id: UUID
    slots: list[SlotInfo]
    closed_reason: str | None = None  # set when the whole day is unbookable


class BookedSlotsResponse(BaseModel):
    date: date
    professional_id: UUID
    booked_slots: list[str]


class BookAppointmentRequest(BaseModel):
    professional_id: UUID
    date: date
    time: time
    procedure: str = Field(min_length=1)
    specialty_id: UUID | None = None
    notes: str | None = None


class CancelAppointmentRequest(BaseModel):
    reason: str | None = None


class UpdateStatusRequest(BaseModel):
    status: AppointmentStatus
    reason: str | None = None
