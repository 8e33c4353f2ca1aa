from datetime import date, time
from pathlib import Path
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from the project root so it loads regardless of cwd
_BACKEND_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _BACKEND_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(str(_ENV_FILE), ".env", "../.env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str
    database_ssl: bool = False

    # JWT
    secret_key: str
    access_token_expire_minutes: int = 15
    refresh_token_expire_days: int = 7
    algorithm: str = "HS256"

    # CORS
    cors_origins: str = "http://localhost:5173"

    # Slot catalog: hour-aligned start times offered for every professional
    slot_times: str = "09:00,10:00,11:00,12:00,13:00,14:00,15:00,16:00"
    max_procedure_length: int = 120

    # Booking calendar. Dates are local to clinic_timezone.
    clinic_timezone: str = "UTC"
    booking_window_days: int = 30
    # Python weekday numbers (Monday=0); default closes Saturday and Sunday
    closed_weekdays: str = "5,6"
    # Comma list of ISO dates the whole clinic is closed
    holidays: str = ""

    # Env
    env: str = "development"

    # Email (SMTP). Leave smtp_host empty to disable sending.
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    from_email: str = ""
    from_name: str = "Clinic Booking"
    # Branding and contact in footer
    site_name: str = "Clinic Booking"
    contact_email: str = ""
    contact_phone: str = ""

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def slot_times_list(self) -> list[time]:
        return sorted(time.fromisoformat(t.strip()) for t in self.slot_times.split(",") if t.strip())

    @property
    def clinic_zone(self) -> ZoneInfo:
        return ZoneInfo(self.clinic_timezone)

    @property
    def closed_weekdays_set(self) -> frozenset[int]:
        return frozenset(int(d) for d in self.closed_weekdays.split(",") if d.strip())

    @property
    def holidays_set(self) -> frozenset[date]:
        return frozenset(date.fromisoformat(d.strip()) for d in self.holidays.split(",") if d.strip())

    @property
    def email_enabled(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_password and self.from_email)


settings = Settings()
