"""Domain errors raised by the booking services.

The HTTP layer maps each class to a status code in ``app.main``; services never
raise ``HTTPException`` themselves.
"""
from datetime import date, time
from uuid import UUID


class BookingError(Exception):
    """Base class for every error the booking services raise on purpose."""

    code = "booking_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BookingValidationError(BookingError):
    """Request fields are missing or malformed. Raised before any storage access."""

    code = "validation_error"


class SlotConflict(BookingError):
    """An active appointment already holds (professional, date, time)."""

    code = "slot_conflict"

    def __init__(self, professional_id: UUID, appointment_date: date, appointment_time: time) -> None:
        super().__init__(
            f"Slot {appointment_date.isoformat()} {appointment_time.strftime('%H:%M')} "
            "was just taken. Reload availability and pick another time."
        )
        self.professional_id = professional_id
        self.appointment_date = appointment_date
        self.appointment_time = appointment_time


class StorageError(BookingError):
    """Any other persistence failure. Not retried here."""

    code = "storage_error"


class AppointmentNotFound(BookingError):
    code = "not_found"


class PermissionDenied(BookingError):
    code = "forbidden"
