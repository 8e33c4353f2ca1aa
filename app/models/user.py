import uuid
from datetime import datetime
from enum import Enum

from sqlmodel import Field, SQLModel

from app.models.common import Timestamp, utc_now


class UserRole(str, Enum):
    USER = "user"
    PROFESSIONAL = "professional"
    ADMIN = "admin"


STAFF_ROLES = frozenset({UserRole.ADMIN.value, UserRole.PROFESSIONAL.value})


class UserBase(SQLModel):
    email: str = Field(unique=True, index=True)
    name: str
    department: str | None = None
    role: str = Field(default=UserRole.USER.value)


class User(UserBase, table=True):
    __tablename__ = "users"
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    hashed_password: str
    # Admin suspension: no new bookings until this moment
    suspended_until: datetime | None = Field(default=None, sa_type=Timestamp)
    created_at: datetime = Field(default_factory=utc_now, sa_type=Timestamp)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


class UserCreate(SQLModel):
    email: str
    password: str
    name: str
    department: str | None = None
    role: UserRole = UserRole.USER


class UserPublic(SQLModel):
    id: uuid.UUID
    email: str
    name: str
    department: str | None = None
    role: str
    suspended_until: datetime | None = None
