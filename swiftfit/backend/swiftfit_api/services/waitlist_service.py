"""Waitlist bookkeeping and promotion.

Positions per class always read 1..N after any operation here commits. Every
public function runs as a single transaction with the class row locked, so two
promotion passes for the same class cannot pick the same entries.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from ..core.errors import AlreadyOnWaitlist, ConflictError, NotFoundError, ValidationError
from ..core.timeutils import utc_now
from ..db import models
from . import notification_service, schedule_service

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PromotionOutcome:
    class_id: int
    spots_available: int
    waitlist_size: int = 0
    results: list[dict] = field(default_factory=list)
    emails: list[notification_service.EmailMessage] = field(default_factory=list)

    @property
    def promoted_count(self) -> int:
        return len(self.results)

    @property
    def booked_count(self) -> int:
        return sum(1 for item in self.results if item["action"] == "promoted")

    @property
    def spots_remaining(self) -> int:
        return max(self.spots_available - self.booked_count, 0)


def _entries(db: Session, class_id: int, limit: int | None = None) -> list[models.WaitlistEntry]:
    stmt = (
        select(models.WaitlistEntry)
        .options(selectinload(models.WaitlistEntry.student).selectinload(models.UserProfile.user))
        .where(models.WaitlistEntry.class_id == class_id)
        .order_by(models.WaitlistEntry.position, models.WaitlistEntry.id)
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    return list(db.execute(stmt).scalars().all())


def renumber(db: Session, class_id: int) -> int:
    """Rewrite positions as 1..N in current order; caller commits."""
    db.flush()
    remaining = _entries(db, class_id)
    for index, entry in enumerate(remaining, start=1):
        if entry.position != index:
            entry.position = index
    return len(remaining)


def list_entries(db: Session, class_id: int) -> list[models.WaitlistEntry]:
    return _entries(db, class_id)


def join(db: Session, class_id: int, student_profile_id: int) -> models.WaitlistEntry:
    try:
        class_session = schedule_service.lock_class(db, class_id)
        if class_session.status != models.ClassStatus.scheduled:
            raise ValidationError("Class is not open for booking", "CLASS_NOT_BOOKABLE")
        existing = (
            db.query(models.WaitlistEntry)
            .filter_by(class_id=class_id, student_profile_id=student_profile_id)
            .first()
        )
        if existing:
            raise AlreadyOnWaitlist()
        booked = (
            db.query(models.Booking)
            .filter_by(
                class_id=class_id,
                student_profile_id=student_profile_id,
                status=models.BookingStatus.confirmed,
            )
            .first()
        )
        if booked:
            raise ConflictError("Student already has a booking for this class", "ALREADY_BOOKED")
        last_position = db.scalar(
            select(func.max(models.WaitlistEntry.position)).where(
                models.WaitlistEntry.class_id == class_id
            )
        )
        entry = models.WaitlistEntry(
            class_id=class_id,
            student_profile_id=student_profile_id,
            position=(last_position or 0) + 1,
            joined_at=utc_now(),
            notified=False,
        )
        db.add(entry)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(entry)
    return entry


def leave(db: Session, entry: models.WaitlistEntry) -> None:
    class_id = entry.class_id
    try:
        schedule_service.lock_class(db, class_id)
        db.delete(entry)
        renumber(db, class_id)
        db.commit()
    except Exception:
        db.rollback()
        raise


def get_entry(db: Session, entry_id: int) -> models.WaitlistEntry:
    entry = db.get(models.WaitlistEntry, entry_id)
    if entry is None:
        raise NotFoundError("Waitlist entry not found", "WAITLIST_ENTRY_NOT_FOUND")
    return entry


def remove_student(db: Session, class_id: int, student_profile_id: int) -> bool:
    """Drop a student's entry after they booked directly; caller commits."""
    entry = (
        db.query(models.WaitlistEntry)
        .filter_by(class_id=class_id, student_profile_id=student_profile_id)
        .first()
    )
    if entry is None:
        return False
    db.delete(entry)
    renumber(db, class_id)
    return True


def run_promotion(
    db: Session,
    class_session: models.ClassSession,
    *,
    auto_promote: bool,
) -> PromotionOutcome:
    """Promote or notify waitlisted students for a locked class; caller commits.

    Promoted bookings are free: ``credits_used`` stays 0.
    """

    spots = schedule_service.spots_available(db, class_session)
    outcome = PromotionOutcome(class_id=class_session.id, spots_available=spots)
    if spots <= 0:
        return outcome

    entries = _entries(db, class_session.id, limit=spots)
    outcome.waitlist_size = len(entries)
    if not entries:
        return outcome

    now = utc_now()
    for entry in entries:
        student = entry.student
        if not auto_promote:
            entry.notified = True
            outcome.results.append(
                {
                    "waitlist_id": entry.id,
                    "student_profile_id": entry.student_profile_id,
                    "action": "notified",
                }
            )
            if student is not None and student.email:
                outcome.emails.append(
                    notification_service.build_waitlist_spot_available(
                        email=student.email, name=student.name, class_session=class_session
                    )
                )
            continue

        booking = models.Booking(
            class_id=class_session.id,
            student_profile_id=entry.student_profile_id,
            status=models.BookingStatus.confirmed,
            booked_at=now,
            credits_used=0,
        )
        db.add(booking)
        db.flush()
        outcome.results.append(
            {
                "waitlist_id": entry.id,
                "student_profile_id": entry.student_profile_id,
                "action": "promoted",
                "booking_id": booking.id,
            }
        )
        db.delete(entry)
        if student is not None and student.email:
            outcome.emails.append(
                notification_service.build_waitlist_promotion(
                    email=student.email, name=student.name, class_session=class_session
                )
            )

    renumber(db, class_session.id)
    return outcome


def promote(db: Session, class_id: int, *, auto_promote: bool = True) -> PromotionOutcome:
    try:
        class_session = schedule_service.lock_class(db, class_id)
        outcome = run_promotion(db, class_session, auto_promote=auto_promote)
        db.commit()
    except Exception:
        db.rollback()
        raise
    if outcome.results:
        logger.info(
            "Waitlist promotion pass",
            extra={
                "class_id": class_id,
                "promoted": outcome.booked_count,
                "notified": outcome.promoted_count - outcome.booked_count,
            },
        )
    notification_service.send_emails(outcome.emails)
    return outcome


__all__ = [
    "PromotionOutcome",
    "renumber",
    "list_entries",
    "join",
    "leave",
    "get_entry",
    "remove_student",
    "run_promotion",
    "promote",
]
