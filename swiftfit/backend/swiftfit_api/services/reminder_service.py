from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ..core.constants import (
    CLASS_REMINDER_DELAY,
    PRE_CLASS_BATCH_SIZE,
    PRE_CLASS_LOOKAHEAD,
    PRE_CLASS_MIN_LEAD,
    REMINDER_BATCH_SIZE,
)
from ..core.errors import NotFoundError, ValidationError
from ..core.timeutils import class_starts_at, utc_now
from ..db import models
from . import notification_service

logger = logging.getLogger(__name__)


def _today() -> date:
    return utc_now().date()


def parse_class_date(value: str | None) -> date:
    if not value:
        raise ValidationError("lastClassDate is required", "MISSING_LAST_CLASS_DATE")
    text = value.strip()
    if len(text) != 10 or text[4] != "-" or text[7] != "-" or not text.replace("-", "").isdigit():
        raise ValidationError("lastClassDate must be in YYYY-MM-DD format", "INVALID_DATE_FORMAT")
    try:
        return datetime.strptime(text, "%Y-%m-%d").date()
    except ValueError as exc:
        raise ValidationError("lastClassDate is not a valid date", "INVALID_DATE") from exc


def schedule_reminder(
    db: Session,
    *,
    last_class_date: str | None,
    student_profile_id: int | None = None,
    email: str | None = None,
) -> models.ClassReminder:
    parsed = parse_class_date(last_class_date)
    normalized_email = email.strip().lower() if email and email.strip() else None
    if student_profile_id is None and normalized_email is None:
        raise ValidationError(
            "Either studentProfileId or email is required", "MISSING_IDENTIFIER"
        )
    if student_profile_id is not None and db.get(models.UserProfile, student_profile_id) is None:
        raise NotFoundError("Student profile not found", "STUDENT_NOT_FOUND")
    reminder = models.ClassReminder(
        student_profile_id=student_profile_id,
        email=normalized_email,
        last_class_date=parsed,
        reminder_scheduled_for=parsed + CLASS_REMINDER_DELAY,
        reminder_sent=False,
    )
    db.add(reminder)
    db.commit()
    db.refresh(reminder)
    return reminder


def due_reminders(db: Session, limit: int | None = None) -> list[models.ClassReminder]:
    query = (
        db.query(models.ClassReminder)
        .options(selectinload(models.ClassReminder.student).selectinload(models.UserProfile.user))
        .filter(models.ClassReminder.reminder_scheduled_for <= _today())
        .filter(models.ClassReminder.reminder_sent.is_(False))
        .order_by(models.ClassReminder.reminder_scheduled_for, models.ClassReminder.id)
    )
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def _parse_reminder_id(value: Any) -> int:
    if value is None or value == "":
        raise ValidationError("reminderId is required", "MISSING_REMINDER_ID")
    if isinstance(value, bool):
        raise ValidationError("reminderId must be a valid integer", "INVALID_REMINDER_ID")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError("reminderId must be a valid integer", "INVALID_REMINDER_ID") from exc


def mark_sent(db: Session, reminder_id: Any) -> models.ClassReminder:
    parsed_id = _parse_reminder_id(reminder_id)
    reminder = db.get(models.ClassReminder, parsed_id)
    if reminder is None:
        raise NotFoundError("Reminder not found", "REMINDER_NOT_FOUND")
    reminder.reminder_sent = True
    reminder.reminder_sent_at = utc_now()
    db.commit()
    db.refresh(reminder)
    return reminder


def send_due_reminders(db: Session) -> dict:
    """Email the next batch of due reminders.

    Students who turned reminders off are marked sent without an email.
    """

    result: dict = {"sent": 0, "skipped": 0, "failed": 0, "errors": []}
    for reminder in due_reminders(db, limit=REMINDER_BATCH_SIZE):
        student = reminder.student
        if student is not None and student.email_reminders is False:
            reminder.reminder_sent = True
            reminder.reminder_sent_at = utc_now()
            result["skipped"] += 1
            continue
        recipient = reminder.email or (student.email if student is not None else None)
        if not recipient:
            result["failed"] += 1
            result["errors"].append(f"Reminder {reminder.id}: No email")
            continue
        message = notification_service.build_class_reminder(
            email=recipient,
            name=student.name if student is not None else None,
            last_class_date=reminder.last_class_date,
        )
        if not notification_service.send_email(message):
            result["failed"] += 1
            result["errors"].append(f"Reminder {reminder.id}: Email delivery failed")
            continue
        reminder.reminder_sent = True
        reminder.reminder_sent_at = utc_now()
        result["sent"] += 1
        db.commit()
    db.commit()
    logger.info(
        "Class reminders processed",
        extra={key: value for key, value in result.items() if key != "errors"},
    )
    return result


def upcoming_bookings(db: Session, now: datetime) -> list[models.Booking]:
    """Confirmed bookings without a pre-class reminder for classes in the lookahead window."""

    horizon = now + PRE_CLASS_LOOKAHEAD
    stmt = (
        select(models.Booking)
        .join(models.ClassSession, models.Booking.class_id == models.ClassSession.id)
        .options(
            selectinload(models.Booking.student).selectinload(models.UserProfile.user),
            selectinload(models.Booking.class_session).selectinload(models.ClassSession.class_type),
            selectinload(models.Booking.class_session).selectinload(models.ClassSession.instructor),
        )
        .where(
            models.Booking.status == models.BookingStatus.confirmed,
            models.Booking.reminder_sent_at.is_(None),
            models.ClassSession.status == models.ClassStatus.scheduled,
            # class dates are studio-local, so pad the UTC range by a day on each side
            models.ClassSession.date >= now.date() - timedelta(days=1),
            models.ClassSession.date <= horizon.date() + timedelta(days=1),
        )
        .order_by(models.ClassSession.date, models.ClassSession.start_time, models.Booking.id)
        .limit(PRE_CLASS_BATCH_SIZE)
    )
    return list(db.execute(stmt).scalars().all())


def send_pre_class_reminders(db: Session) -> dict:
    """Remind students about classes starting within their reminder window.

    The window is the student's ``reminder_hours_before`` (24 by default);
    nothing goes out for classes less than an hour away. Each booking is
    reminded once. Opted-out students are marked as handled without an
    email. When anything was sent or failed the admin gets a summary.
    """

    now = utc_now()
    bookings = upcoming_bookings(db, now)
    result: dict = {"sent": 0, "skipped": 0, "failed": 0, "errors": []}
    for booking in bookings:
        class_session = booking.class_session
        until = class_starts_at(class_session) - now
        student = booking.student
        window = timedelta(hours=(student.reminder_hours_before if student else None) or 24)
        if until < PRE_CLASS_MIN_LEAD or until > window:
            continue
        if student is not None and student.email_reminders is False:
            booking.reminder_sent_at = now
            result["skipped"] += 1
            continue
        recipient = student.email if student is not None else None
        if not recipient:
            result["failed"] += 1
            result["errors"].append(f"Booking {booking.id}: No email")
            continue
        message = notification_service.build_pre_class_reminder(
            email=recipient,
            name=student.name,
            class_session=class_session,
            hours_until=round(until.total_seconds() / 3600),
        )
        if not notification_service.send_email(message):
            result["failed"] += 1
            result["errors"].append(f"Booking {booking.id}: Email delivery failed")
            continue
        booking.reminder_sent_at = now
        result["sent"] += 1
        db.commit()
    db.commit()
    logger.info(
        "Pre-class reminders processed",
        extra={"checked": len(bookings), **{key: value for key, value in result.items() if key != "errors"}},
    )
    if result["sent"] or result["failed"]:
        notification_service.send_emails(
            [notification_service.build_pre_class_summary(checked=len(bookings), result=result)]
        )
    result["bookings_checked"] = len(bookings)
    return result


__all__ = [
    "parse_class_date",
    "schedule_reminder",
    "due_reminders",
    "mark_sent",
    "send_due_reminders",
    "upcoming_bookings",
    "send_pre_class_reminders",
]
