import uuid

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class Specialty(SQLModel, table=True):
    __tablename__ = "specialties"
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(unique=True, index=True)
    description: str | None = None
    duration_minutes: int = 60
    active: bool = True


class ProfessionalSpecialty(SQLModel, table=True):
    """Which specialties a professional offers."""

    __tablename__ = "professional_specialties"
    __table_args__ = (
        UniqueConstraint("professional_id", "specialty_id", name="uq_professional_specialty"),
    )
    id: int | None = Field(default=None, primary_key=True)
    professional_id: uuid.UUID = Field(foreign_key="professionals.id", index=True)
    specialty_id: uuid.UUID = Field(foreign_key="specialties.id", index=True)


class SpecialtyPublic(SQLModel):
    id: uuid.UUID
    name: str
    description: str | None = None
    duration_minutes: int
