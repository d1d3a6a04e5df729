"""
Common utility functions for birdlearn.

Time handling and small numeric helpers shared by the scheduler and the
stores. All timestamps inside birdlearn are timezone-aware UTC.
"""

import math
import datetime
from typing import Optional


def utc_now() -> datetime.datetime:
    """Current time as an aware UTC datetime."""
    return datetime.datetime.now(datetime.timezone.utc)


def ensure_utc(value: Optional[datetime.datetime]) -> Optional[datetime.datetime]:
    """
    Make a datetime timezone-aware.

    Naive values (as returned by SQLite) are taken to be UTC already.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc)


def parse_datetime(value: Optional[str]) -> Optional[datetime.datetime]:
    if not value:
        return None
    return ensure_utc(datetime.datetime.fromisoformat(value))


def percentage(part: int, total: int) -> int:
    """Integer percentage rounded half up; 0 when ``total`` is 0."""
    if total <= 0:
        return 0
    return int(math.floor(part * 100 / total + 0.5))
