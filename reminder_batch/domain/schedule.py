"""
Cron evaluation for the interval trigger.

Pure: the scheduler supplies the current time.  Expressions use the classic
five fields ``minute hour day_of_month month day_of_week`` with
0 = Sunday, and are evaluated on wall-clock minutes in the tenant zone so
``*/30 * * * *`` fires on :00 and :30 local time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from reminder_batch.domain.calendar import cron_weekday
from reminder_kernel.exceptions import InvalidCronExpressionError

# A year of minutes; every valid expression matches within that window.
_MAX_SCAN_MINUTES = 366 * 24 * 60


@dataclass(frozen=True)
class CronSpec:
    """Parsed cron expression; each field is the set of matching values."""

    minutes: frozenset[int] = field(default_factory=lambda: frozenset(range(60)))
    hours: frozenset[int] = field(default_factory=lambda: frozenset(range(24)))
    days_of_month: frozenset[int] = field(default_factory=lambda: frozenset(range(1, 32)))
    months: frozenset[int] = field(default_factory=lambda: frozenset(range(1, 13)))
    days_of_week: frozenset[int] = field(default_factory=lambda: frozenset(range(7)))


def _parse_field(text: str, low: int, high: int) -> frozenset[int]:
    """Expand one field: ``*``, ``N``, ``N-M``, ``*/S``, ``N/S``, ``N-M/S`` and lists.

    Raises:
        ValueError: Syntax error or value outside ``[low, high]``.
    """
    values: set[int] = set()

    for part in text.split(","):
        part = part.strip()
        step = 1
        if "/" in part:
            part, step_text = part.split("/", 1)
            step = int(step_text)
            if step <= 0:
                raise ValueError(f"step must be positive: {step}")

        if part == "*":
            start, end = low, high
        elif "-" in part:
            s, e = part.split("-", 1)
            start, end = int(s), int(e)
            if start > end:
                raise ValueError(f"range start > end: {start}-{end}")
        else:
            start = int(part)
            end = high if step > 1 else start

        if start < low or end > high:
            raise ValueError(f"{part} outside range [{low}, {high}]")
        values.update(range(start, end + 1, step))

    return frozenset(values)


def parse_cron(expression: str) -> CronSpec:
    """
    Parse a five-field cron expression.

    Raises:
        InvalidCronExpressionError: Wrong field count or an invalid field.
    """
    parts = expression.strip().split()
    if len(parts) != 5:
        raise InvalidCronExpressionError(
            expression, f"expected 5 fields, got {len(parts)}",
        )

    bounds = ((0, 59), (0, 23), (1, 31), (1, 12), (0, 6))
    try:
        fields = [
            _parse_field(text, low, high)
            for text, (low, high) in zip(parts, bounds)
        ]
    except ValueError as exc:
        raise InvalidCronExpressionError(expression, str(exc)) from None

    return CronSpec(*fields)


def matches_cron(spec: CronSpec, moment: datetime) -> bool:
    """True when ``moment`` (already in the evaluation zone) matches."""
    return (
        moment.minute in spec.minutes
        and moment.hour in spec.hours
        and moment.day in spec.days_of_month
        and moment.month in spec.months
        and cron_weekday(moment.date()) in spec.days_of_week
    )


def next_fire_time(spec: CronSpec, after: datetime, tz: ZoneInfo) -> datetime:
    """
    First matching minute strictly after ``after``, in the tenant zone.

    Minutes are stepped in UTC and matched on local wall time, so a DST gap
    is skipped and no wall minute is produced that the zone never shows.

    Raises:
        ValueError: Nothing matches within a year (e.g. ``0 0 31 2 *``).
    """
    instant = after.astimezone(timezone.utc).replace(second=0, microsecond=0)
    for _ in range(_MAX_SCAN_MINUTES):
        instant += timedelta(minutes=1)
        candidate = instant.astimezone(tz)
        if matches_cron(spec, candidate):
            return candidate

    raise ValueError(f"no cron match within a year after {after.isoformat()}")
