from app.models.user import User, UserCreate, UserPublic, UserRole
from app.models.refresh_token import RefreshToken
from app.models.specialty import ProfessionalSpecialty, Specialty, SpecialtyPublic
from app.models.professional import Professional, ProfessionalCreate, ProfessionalPublic
from app.models.appointment import (
    Appointment,
    AppointmentCreate,
    AppointmentPublic,
    AppointmentStatus,
)
from app.models.calendar import (
    AvailableDay,
    AvailableDayCreate,
    AvailableDayPublic,
    BlockedDay,
    BlockedDayCreate,
    BlockedDayPublic,
    SpecialtyBlockCreate,
    SpecialtyBlockPublic,
    UserSpecialtyBlock,
)

__all__ = [
    "User",
    "UserCreate",
    "UserPublic",
    "UserRole",
    "RefreshToken",
    "Specialty",
    "SpecialtyPublic",
    "ProfessionalSpecialty",
    "Professional",
    "ProfessionalCreate",
    "ProfessionalPublic",
    "Appointment",
    "AppointmentCreate",
    "AppointmentPublic",
    "AppointmentStatus",
    "AvailableDay",
    "AvailableDayCreate",
    "AvailableDayPublic",
    "BlockedDay",
    "BlockedDayCreate",
    "BlockedDayPublic",
    "SpecialtyBlockCreate",
    "SpecialtyBlockPublic",
    "UserSpecialtyBlock",
]
