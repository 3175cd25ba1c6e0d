"""
Calendar helpers in the tenant time zone.

Every "today" in the reminder batch is the calendar date in the tenant zone,
never the server's.  Days of the week follow the cron convention used by the
sending policy: 0 = Sunday .. 6 = Saturday.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo


def local_now(now: datetime, tz: ZoneInfo) -> datetime:
    """``now`` (timezone-aware) expressed in the tenant zone."""
    return now.astimezone(tz)


def local_today(now: datetime, tz: ZoneInfo) -> date:
    return now.astimezone(tz).date()


def start_of_day_utc(day: date, tz: ZoneInfo) -> datetime:
    """Tenant-local midnight of ``day`` as an aware UTC datetime."""
    return datetime.combine(day, time.min, tzinfo=tz).astimezone(timezone.utc)


def cron_weekday(day: date) -> int:
    """Day of the week with 0 = Sunday."""
    return (day.weekday() + 1) % 7


def to_local_date(value: object, tz: ZoneInfo) -> date | None:
    """
    Coerce a stored date value to a calendar date.

    Plain dates are taken as-is.  Aware datetimes are converted to the tenant
    zone first; naive ones are taken at face value.  Strings must start with
    an ISO ``YYYY-MM-DD``.  Anything else yields None.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(tz).date()
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def days_until_due(due: object, today: date, tz: ZoneInfo) -> int | None:
    """
    Whole days from ``today`` to the due date, both at tenant midnight.

    Negative when overdue.  None when the due date cannot be interpreted.
    """
    due_date = to_local_date(due, tz)
    if due_date is None:
        return None
    return (due_date - today).days


def is_today(value: object, today: date, tz: ZoneInfo) -> bool:
    return to_local_date(value, tz) == today


def is_hour_allowed(hour: int, start_hour: int, end_hour: int) -> bool:
    """True when ``hour`` falls in ``[start_hour, end_hour)``."""
    return start_hour <= hour < end_hour
