"""Calendar day of the daily challenge.

Every player shares the same day boundary: the date is always taken in the
reference timezone, never the host's local one. The ``YYYY-MM-DD`` key is both
the storage key for daily progress and the leaderboard partition.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

REFERENCE_TIMEZONE = "America/New_York"


def reference_date(now: Optional[datetime] = None, tz_name: str = REFERENCE_TIMEZONE) -> date:
    """The calendar date of ``now`` (UTC when naive) in the reference timezone."""
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(ZoneInfo(tz_name)).date()


def date_key(now: Optional[datetime] = None, tz_name: str = REFERENCE_TIMEZONE) -> str:
    return reference_date(now, tz_name).isoformat()


def parse_date_key(key: str) -> Optional[date]:
    try:
        return date.fromisoformat(key)
    except (TypeError, ValueError):
        return None


def retention_cutoff(today: str, days: int) -> date:
    """Oldest date still kept when retaining ``days`` days before ``today``."""
    return date.fromisoformat(today) - timedelta(days=days)
