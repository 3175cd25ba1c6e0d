"""Tests for reminder_batch.domain.calendar -- tenant-zone date arithmetic."""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from reminder_batch.domain.calendar import (
    cron_weekday,
    days_until_due,
    is_hour_allowed,
    is_today,
    local_today,
    start_of_day_utc,
    to_local_date,
)

TZ = ZoneInfo("America/Argentina/Buenos_Aires")


class TestLocalToday:
    def test_late_utc_evening_is_still_today_locally(self):
        # 02:00 UTC on the 5th is 23:00 on the 4th in Buenos Aires.
        now = datetime(2026, 3, 5, 2, 0, tzinfo=timezone.utc)
        assert local_today(now, TZ) == date(2026, 3, 4)

    def test_start_of_day_utc(self):
        assert start_of_day_utc(date(2026, 3, 4), TZ) == datetime(
            2026, 3, 4, 3, 0, tzinfo=timezone.utc
        )


class TestCronWeekday:
    @pytest.mark.parametrize(
        "day, expected",
        [
            (date(2026, 3, 1), 0),  # Sunday
            (date(2026, 3, 2), 1),  # Monday
            (date(2026, 3, 4), 3),  # Wednesday
            (date(2026, 2, 28), 6),  # Saturday
        ],
    )
    def test_sunday_is_zero(self, day, expected):
        assert cron_weekday(day) == expected


class TestDaysUntilDue:
    today = date(2026, 3, 4)

    @pytest.mark.parametrize(
        "due, expected",
        [
            (date(2026, 3, 4), 0),
            (date(2026, 3, 5), 1),
            (date(2026, 3, 9), 5),
            (date(2026, 3, 3), -1),
            (date(2022, 9, 13), -1268),
        ],
    )
    def test_dates(self, due, expected):
        assert days_until_due(due, self.today, TZ) == expected

    def test_iso_string(self):
        assert days_until_due("2026-03-06", self.today, TZ) == 2

    def test_aware_datetime_converted_to_tenant_zone(self):
        # 01:00 UTC on the 5th is still the 4th locally.
        due = datetime(2026, 3, 5, 1, 0, tzinfo=timezone.utc)
        assert days_until_due(due, self.today, TZ) == 0

    @pytest.mark.parametrize("bad", [None, "", "not-a-date", "2026-02-30", 12345])
    def test_unparseable_is_none(self, bad):
        assert days_until_due(bad, self.today, TZ) is None

    def test_to_local_date_naive_datetime(self):
        assert to_local_date(datetime(2026, 3, 4, 23, 59), TZ) == date(2026, 3, 4)


class TestIsToday:
    def test_matches(self):
        assert is_today(date(2026, 2, 28), date(2026, 2, 28), TZ)

    def test_none_is_not_today(self):
        assert not is_today(None, date(2026, 2, 28), TZ)


class TestOperatingHours:
    @pytest.mark.parametrize(
        "hour, allowed",
        [(0, False), (8, False), (9, True), (12, True), (19, True), (20, False), (23, False)],
    )
    def test_half_open_window(self, hour, allowed):
        assert is_hour_allowed(hour, 9, 20) is allowed
