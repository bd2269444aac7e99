# portaria/utils/timeutils.py
"""Timestamp coercion for values coming out of Firestore documents."""

from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from typing import Any, Optional


def to_utc(dt: datetime) -> datetime:
    """Naive datetimes are treated as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def coerce_timestamp(value: Any) -> Optional[datetime]:
    """
    Accepts the shapes a stored timestamp shows up in:
      - datetime (Firestore's DatetimeWithNanoseconds is a subclass)
      - {"seconds": ..., "nanoseconds": ...} / {"_seconds": ...} from JSON exports
      - objects with a .seconds attribute (protobuf Timestamp)
      - ISO-8601 strings, with or without a trailing Z
    Returns None for anything else, including empty strings.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_utc(value)
    if isinstance(value, Mapping):
        seconds = value.get("seconds", value.get("_seconds"))
        nanos = value.get("nanoseconds", value.get("_nanoseconds", 0)) or 0
        if isinstance(seconds, (int, float)):
            return datetime.fromtimestamp(seconds + nanos / 1e9, tz=timezone.utc)
        return None
    if isinstance(value, str):
        try:
            return to_utc(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))
        except ValueError:
            return None
    seconds = getattr(value, "seconds", None)
    if isinstance(seconds, (int, float)):
        nanos = getattr(value, "nanos", 0) or 0
        return datetime.fromtimestamp(seconds + nanos / 1e9, tz=timezone.utc)
    return None


def day_window(days: int, now: Optional[datetime] = None) -> tuple[datetime, datetime]:
    """[midnight of (now - days), 23:59:59.999999 of now], both in UTC."""
    now = to_utc(now or datetime.now(timezone.utc))
    start = (now - timedelta(days=days)).replace(hour=0, minute=0, second=0, microsecond=0)
    end = now.replace(hour=23, minute=59, second=59, microsecond=999999)
    return start, end
