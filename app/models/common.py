from datetime import UTC, datetime

from sqlalchemy import DateTime

# Every timestamp column is TIMESTAMP WITH TIME ZONE and holds aware UTC values
Timestamp = DateTime(timezone=True)


def utc_now() -> datetime:
    return datetime.now(UTC)


def as_utc(dt: datetime) -> datetime:
    """Aware UTC. SQLite hands timestamps back naive; those are UTC already."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)
