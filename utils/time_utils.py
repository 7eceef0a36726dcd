"""
utils/time_utils.py

Purpose: Time helpers

- Timezone-aware "now"
- Remaining-days calculations for subscriptions
"""

import math
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_aware(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Treats naive datetimes from the backend as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def days_until(end: Optional[datetime], now: Optional[datetime] = None) -> int:
    """
    Whole days remaining until `end`, rounded up, never negative.
    """
    if end is None:
        return 0
    now = now or utcnow()
    seconds = (ensure_aware(end) - ensure_aware(now)).total_seconds()
    if seconds <= 0:
        return 0
    return math.ceil(seconds / 86400)

