import datetime as dt
from typing import Any

from .common import CamelModel


class ReminderSchedule(CamelModel):
    last_class_date: str | None = None
    student_profile_id: int | None = None
    email: str | None = None


class ReminderMarkSent(CamelModel):
    reminder_id: Any = None


class ClassReminder(CamelModel):
    id: int
    student_profile_id: int | None = None
    email: str | None = None
    last_class_date: dt.date
    reminder_scheduled_for: dt.date
    reminder_sent: bool = False
    reminder_sent_at: dt.datetime | None = None


class DueReminders(CamelModel):
    due_reminders: list[ClassReminder]
    count: int


class ReminderSweepResult(CamelModel):
    sent: int = 0
    skipped: int = 0
    failed: int = 0
    errors: list[str] = []


class PreClassReminderResult(ReminderSweepResult):
    success: bool = True
    timestamp: dt.datetime
    bookings_checked: int = 0
    message: str
