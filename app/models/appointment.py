import uuid
from datetime import date, datetime, time
from enum import Enum

from sqlalchemy import CheckConstraint, Index, text
from sqlmodel import Field, SQLModel

from app.models.common import Timestamp, utc_now


class AppointmentStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


ACTIVE_SLOT_INDEX = "uq_appointments_active_slot"
ACTIVE_SLOT_COLUMNS = ("professional_id", "appointment_date", "appointment_time")
_ACTIVE_ONLY = text("status <> 'cancelled'")


class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    __table_args__ = (
        # At most one non-cancelled appointment per slot. Cancelling frees it.
        Index(
            ACTIVE_SLOT_INDEX,
            *ACTIVE_SLOT_COLUMNS,
            unique=True,
            postgresql_where=_ACTIVE_ONLY,
            sqlite_where=_ACTIVE_ONLY,
        ),
        CheckConstraint(
            "status IN ('scheduled', 'completed', 'cancelled', 'no_show')",
            name="ck_appointments_status",
        ),
    )
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    professional_id: uuid.UUID = Field(foreign_key="professionals.id", index=True)
    specialty_id: uuid.UUID | None = Field(default=None, foreign_key="specialties.id")
    procedure: str
    appointment_date: date = Field(index=True)
    appointment_time: time
    status: str = Field(default=AppointmentStatus.SCHEDULED.value)
    notes: str | None = None
    cancel_reason: str | None = None
    cancelled_at: datetime | None = Field(default=None, sa_type=Timestamp)
    completed_at: datetime | None = Field(default=None, sa_type=Timestamp)
    created_at: datetime = Field(default_factory=utc_now, sa_type=Timestamp)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=Timestamp)


class AppointmentCreate(SQLModel):
    professional_id: uuid.UUID | None = None
    specialty_id: uuid.UUID | None = None
    procedure: str = ""
    appointment_date: date | None = None
    appointment_time: time | None = None
    notes: str | None = None


class AppointmentPublic(SQLModel):
    id: uuid.UUID
    user_id: uuid.UUID
    professional_id: uuid.UUID
    specialty_id: uuid.UUID | None = None
    procedure: str
    date: date
    time: str  # HH:MM
    status: str
    notes: str | None = None
    cancel_reason: str | None = None
    cancelled_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime
