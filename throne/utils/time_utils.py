"""
Time Utilities

Functions:
- utc_now(): Timezone-aware current time
- ensure_utc(dt): Attach UTC to naive datetimes read back from the store
- reign_seconds(start, end): Seconds between two instants, never negative
"""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """SQLite drops tzinfo; stored values are always UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def reign_seconds(start: datetime, end: datetime) -> float:
    delta = ensure_utc(end) - ensure_utc(start)
    return max(delta.total_seconds(), 0.0)
