"""
Sending policy: which days a credit gets a reminder.

Credits due today or tomorrow are reminded every day.  Everything else is
spread over the week by id parity so each borrower hears from us about three
times a week: even ids on Monday, Wednesday and Friday, odd ids on the other
weekdays.  Nothing but urgent credits goes out on Sunday.

Days of the week: 0 = Sunday .. 6 = Saturday.
"""

from __future__ import annotations

SUNDAY = 0
EVEN_ID_DAYS = frozenset({1, 3, 5})
ODD_ID_DAYS = frozenset({2, 4, 6})


def is_urgent(days_until_due: int) -> bool:
    return days_until_due in (0, 1)


def should_send_today(day_of_week: int, days_until_due: int, credit_id: int) -> bool:
    if is_urgent(days_until_due):
        return True
    if day_of_week == SUNDAY:
        return False
    if credit_id % 2 == 0:
        return day_of_week in EVEN_ID_DAYS
    return day_of_week in ODD_ID_DAYS
