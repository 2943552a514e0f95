from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from ..config import get_settings


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; every stored timestamp is UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def studio_timezone() -> ZoneInfo:
    return ZoneInfo(get_settings().timezone)


def class_starts_at(class_session) -> datetime:
    local = datetime.combine(class_session.date, class_session.start_time, tzinfo=studio_timezone())
    return local.astimezone(timezone.utc)
