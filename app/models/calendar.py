import uuid
from datetime import date, datetime

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from app.models.common import Timestamp, utc_now


class BlockedDay(SQLModel, table=True):
    """A day with no bookings. Without a professional it closes the whole clinic."""

    __tablename__ = "blocked_days"
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    professional_id: uuid.UUID | None = Field(default=None, foreign_key="professionals.id", index=True)
    day: date = Field(index=True)
    reason: str | None = None
    created_at: datetime = Field(default_factory=utc_now, sa_type=Timestamp)


class AvailableDay(SQLModel, table=True):
    """Days a professional explicitly works.

    When a professional has any inside the booking window, only those days are open.
    """

    __tablename__ = "available_days"
    __table_args__ = (UniqueConstraint("professional_id", "day", name="uq_available_day"),)
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    professional_id: uuid.UUID = Field(foreign_key="professionals.id", index=True)
    day: date = Field(index=True)
    created_at: datetime = Field(default_factory=utc_now, sa_type=Timestamp)


class UserSpecialtyBlock(SQLModel, table=True):
    """Keeps one user from booking one specialty until blocked_until."""

    __tablename__ = "user_specialty_blocks"
    __table_args__ = (UniqueConstraint("user_id", "specialty_id", name="uq_user_specialty_block"),)
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    specialty_id: uuid.UUID = Field(foreign_key="specialties.id")
    blocked_until: datetime = Field(sa_type=Timestamp)
    reason: str | None = None
    created_at: datetime = Field(default_factory=utc_now, sa_type=Timestamp)


class BlockedDayCreate(SQLModel):
    day: date
    professional_id: uuid.UUID | None = None
    reason: str | None = None


class AvailableDayCreate(SQLModel):
    professional_id: uuid.UUID
    day: date


class SpecialtyBlockCreate(SQLModel):
    user_id: uuid.UUID
    specialty_id: uuid.UUID
    blocked_until: datetime
    reason: str | None = None


class BlockedDayPublic(SQLModel):
    id: uuid.UUID
    day: date
    professional_id: uuid.UUID | None
    reason: str | None


class AvailableDayPublic(SQLModel):
    id: uuid.UUID
    professional_id: uuid.UUID
    day: date


class SpecialtyBlockPublic(SQLModel):
    id: uuid.UUID
    user_id: uuid.UUID
    specialty_id: uuid.UUID
    blocked_until: datetime
    reason: str | None
