from datetime import date, datetime, time, timezone

from sqlalchemy import DateTime

# Column type for every timestamp; values are timezone-aware UTC
UTCDateTime = DateTime(timezone=True)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_today() -> date:
    return utc_now().date()


def as_utc(value: datetime) -> datetime:
    """SQLite hands timestamps back without a zone; they were stored as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)
