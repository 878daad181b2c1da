from datetime import datetime, timezone

from bson import ObjectId
from bson.errors import InvalidId


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Make a naive datetime timezone-aware (UTC). Already-aware datetimes pass through.

    MongoDB hands datetimes back without tzinfo. Wrap any stored kickoff or
    sync timestamp with ensure_utc() before comparing it to utcnow(),
    otherwise Python raises "can't compare offset-naive and offset-aware
    datetimes".
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def as_utc(dt: datetime | None) -> datetime | None:
    """None-safe UTC conversion for API responses."""
    if dt is None:
        return None
    return ensure_utc(dt)


def parse_utc(value: str | datetime) -> datetime:
    """Parse an ISO 8601 string (with or without Z/offset) into a tz-aware UTC datetime."""
    if isinstance(value, datetime):
        return ensure_utc(value)
    return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


def parse_object_id(value: str | ObjectId) -> ObjectId:
    """Convert a path/body id to ObjectId. Raises InvalidId (mapped to 400) on garbage."""
    if isinstance(value, ObjectId):
        return value
    if not value:
        raise InvalidId("empty id")
    return ObjectId(str(value))
