from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from ..config import get_settings
from ..core.constants import CLASS_CANCELLED_ACTION
from ..core.errors import ClassNotFound, NotFoundError
from ..core.timeutils import utc_now
from ..db import models
from . import credit_service, notification_service

logger = logging.getLogger(__name__)


def get_class(db: Session, class_id: int) -> models.ClassSession:
    class_session = db.get(models.ClassSession, class_id)
    if class_session is None:
        raise ClassNotFound(class_id)
    return class_session


def lock_class(db: Session, class_id: int) -> models.ClassSession:
    """Load the class row with ``FOR UPDATE`` so capacity checks are serialized."""
    class_session = (
        db.execute(
            select(models.ClassSession)
            .options(selectinload(models.ClassSession.class_type))
            .where(models.ClassSession.id == class_id)
            .with_for_update()
        )
        .scalars()
        .first()
    )
    if class_session is None:
        raise ClassNotFound(class_id)
    return class_session


def count_confirmed(db: Session, class_id: int) -> int:
    return int(
        db.scalar(
            select(func.count(models.Booking.id)).where(
                models.Booking.class_id == class_id,
                models.Booking.status == models.BookingStatus.confirmed,
            )
        )
        or 0
    )


def spots_available(db: Session, class_session: models.ClassSession) -> int:
    return max(class_session.capacity - count_confirmed(db, class_session.id), 0)


def confirmed_counts(db: Session, class_ids: list[int]) -> dict[int, int]:
    if not class_ids:
        return {}
    rows = (
        db.query(models.Booking.class_id, func.count(models.Booking.id))
        .filter(models.Booking.class_id.in_(class_ids))
        .filter(models.Booking.status == models.BookingStatus.confirmed)
        .group_by(models.Booking.class_id)
        .all()
    )
    return {class_id: int(count) for class_id, count in rows}


def list_classes(
    db: Session,
    *,
    from_date: date | None = None,
    to_date: date | None = None,
    status: models.ClassStatus | None = None,
    class_type_id: int | None = None,
) -> list[models.ClassSession]:
    query = db.query(models.ClassSession).options(
        selectinload(models.ClassSession.class_type),
        selectinload(models.ClassSession.instructor),
    )
    if from_date:
        query = query.filter(models.ClassSession.date >= from_date)
    if to_date:
        query = query.filter(models.ClassSession.date <= to_date)
    if status:
        query = query.filter(models.ClassSession.status == status)
    if class_type_id:
        query = query.filter(models.ClassSession.class_type_id == class_type_id)
    return query.order_by(models.ClassSession.date, models.ClassSession.start_time).all()


def annotate_classes(db: Session, classes: list[models.ClassSession]) -> list[models.ClassSession]:
    counts = confirmed_counts(db, [class_session.id for class_session in classes])
    for class_session in classes:
        booked = counts.get(class_session.id, 0)
        setattr(class_session, "booked_count", booked)
        setattr(class_session, "spots_available", max(class_session.capacity - booked, 0))
        setattr(
            class_session,
            "class_type_name",
            class_session.class_type.name if class_session.class_type else None,
        )
        setattr(
            class_session,
            "instructor_name",
            class_session.instructor.name if class_session.instructor else None,
        )
    return classes


def get_cancellation_window_hours(db: Session) -> int:
    info = db.query(models.StudioInfo).order_by(models.StudioInfo.id).first()
    if info is not None and info.cancellation_window_hours is not None:
        return info.cancellation_window_hours
    return get_settings().cancellation_window_hours


def create_class(db: Session, **values) -> models.ClassSession:
    if db.get(models.ClassType, values["class_type_id"]) is None:
        raise NotFoundError("Class type not found", "CLASS_TYPE_NOT_FOUND")
    if values.get("instructor_id") and db.get(models.Instructor, values["instructor_id"]) is None:
        raise NotFoundError("Instructor not found", "INSTRUCTOR_NOT_FOUND")
    class_session = models.ClassSession(**values)
    db.add(class_session)
    db.commit()
    db.refresh(class_session)
    return class_session


def update_class(db: Session, class_session: models.ClassSession, values: dict) -> models.ClassSession:
    if "class_type_id" in values and db.get(models.ClassType, values["class_type_id"]) is None:
        raise NotFoundError("Class type not found", "CLASS_TYPE_NOT_FOUND")
    if values.get("instructor_id") and db.get(models.Instructor, values["instructor_id"]) is None:
        raise NotFoundError("Instructor not found", "INSTRUCTOR_NOT_FOUND")
    for field, value in values.items():
        setattr(class_session, field, value)
    db.commit()
    db.refresh(class_session)
    return class_session


def cancel_class(
    db: Session,
    class_session: models.ClassSession,
    *,
    actor_id: int | None = None,
) -> models.ClassSession:
    if class_session.status == models.ClassStatus.cancelled:
        return class_session

    now = utc_now()
    emails: list[notification_service.EmailMessage] = []
    try:
        class_session = lock_class(db, class_session.id)
        class_session.status = models.ClassStatus.cancelled

        bookings = (
            db.query(models.Booking)
            .options(selectinload(models.Booking.student).selectinload(models.UserProfile.user))
            .filter(models.Booking.class_id == class_session.id)
            .filter(models.Booking.status == models.BookingStatus.confirmed)
            .all()
        )
        for booking in bookings:
            refunded = credit_service.refund_credit(db, booking)
            booking.status = models.BookingStatus.cancelled
            booking.cancelled_at = now
            booking.cancellation_type = models.CancellationType.class_cancelled

            student = booking.student
            db.add(
                models.AuditLog(
                    actor_type=models.ActorType.admin,
                    actor_id=actor_id,
                    action=CLASS_CANCELLED_ACTION,
                    entity_type="booking",
                    entity_id=booking.id,
                    payload={
                        "student_profile_id": booking.student_profile_id,
                        "class_id": class_session.id,
                        "class_date": class_session.date.isoformat(),
                        "credits_refunded": refunded,
                    },
                )
            )
            if student is not None and student.email:
                emails.append(
                    notification_service.build_class_cancelled(
                        email=student.email,
                        name=student.name,
                        class_session=class_session,
                    )
                )

        db.query(models.WaitlistEntry).filter(
            models.WaitlistEntry.class_id == class_session.id
        ).delete(synchronize_session=False)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "Class cancelled",
        extra={"class_id": class_session.id, "bookings_cancelled": len(bookings)},
    )
    notification_service.send_emails(emails)
    db.refresh(class_session)
    return class_session


__all__ = [
    "get_class",
    "lock_class",
    "count_confirmed",
    "spots_available",
    "confirmed_counts",
    "list_classes",
    "annotate_classes",
    "get_cancellation_window_hours",
    "create_class",
    "update_class",
    "cancel_class",
]
