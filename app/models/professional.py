import uuid
from datetime import datetime

from sqlmodel import Field, SQLModel

from app.models.common import Timestamp, utc_now


class Professional(SQLModel, table=True):
    __tablename__ = "professionals"
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str
    email: str | None = None
    phone: str | None = None
    active: bool = True
    # Login account of the professional, when one was created
    user_id: uuid.UUID | None = Field(default=None, foreign_key="users.id", unique=True)
    created_at: datetime = Field(default_factory=utc_now, sa_type=Timestamp)


class ProfessionalCreate(SQLModel):
    name: str
    email: str | None = None
    phone: str | None = None
    specialty_ids: list[uuid.UUID] = []
    account_password: str | None = None


class ProfessionalPublic(SQLModel):
    id: uuid.UUID
    name: str
    email: str | None = None
    phone: str | None = None
    user_id: uuid.UUID | None = None
    specialties: list[str] = []
