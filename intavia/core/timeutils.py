from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite returns them without tzinfo)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def from_timestamp(value: Optional[int]) -> Optional[datetime]:
    """Convert a provider epoch-seconds value to an aware datetime."""
    if not value:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)
