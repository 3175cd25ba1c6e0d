"""
Reminder Batch - periodic dispatch of repayment reminders.

- Pure domain: calendar, sending policy, grouping, promotion rule, message
  composition, cron evaluation, frozen DTOs.
- Services: storage repository, lock manager, orphan lock reclaimer,
  dispatcher, engine, scheduler.
- Transport: messaging gateway clients.
"""
