from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ..core.errors import (
    BookingNotFound,
    ClassFull,
    ClassNotFound,
    ConflictError,
    InsufficientCredits,
    NotFoundError,
    ValidationError,
)
from ..core.timeutils import class_starts_at, utc_now
from ..db import models
from . import credit_service, notification_service, schedule_service, waitlist_service

logger = logging.getLogger(__name__)

ATTENDANCE_STATUSES = {
    models.BookingStatus.attended.value,
    models.BookingStatus.no_show.value,
    models.BookingStatus.confirmed.value,
}


@dataclass(slots=True)
class CancellationResult:
    booking: models.Booking
    cancellation_type: models.CancellationType
    hours_before_class: float
    credits_refunded: int
    promotion: waitlist_service.PromotionOutcome | None = None

    @property
    def credit_refunded(self) -> bool:
        return self.credits_refunded > 0

    @property
    def penalty_applied(self) -> bool:
        return self.cancellation_type in (
            models.CancellationType.late,
            models.CancellationType.no_show,
        )


def get_booking(db: Session, booking_id: int) -> models.Booking:
    booking = db.get(models.Booking, booking_id)
    if booking is None:
        raise BookingNotFound(booking_id)
    return booking


def list_bookings(
    db: Session,
    *,
    class_id: int | None = None,
    student_profile_id: int | None = None,
    status: models.BookingStatus | None = None,
) -> list[models.Booking]:
    query = db.query(models.Booking)
    if class_id:
        query = query.filter(models.Booking.class_id == class_id)
    if student_profile_id:
        query = query.filter(models.Booking.student_profile_id == student_profile_id)
    if status:
        query = query.filter(models.Booking.status == status)
    return query.order_by(models.Booking.booked_at.desc(), models.Booking.id.desc()).all()


def create_booking(db: Session, class_id: int, student_profile_id: int) -> models.Booking:
    """Reserve a seat and draw one credit for it.

    Raises ``ClassFull`` when the class has no free seats; callers put the
    student on the waitlist instead.
    """

    student = (
        db.query(models.UserProfile)
        .options(selectinload(models.UserProfile.user))
        .filter_by(id=student_profile_id)
        .first()
    )
    if student is None:
        raise NotFoundError("Student profile not found", "STUDENT_NOT_FOUND")
    try:
        class_session = schedule_service.lock_class(db, class_id)
        if class_session.status != models.ClassStatus.scheduled:
            raise ValidationError("Class is not open for booking", "CLASS_NOT_BOOKABLE")
        if class_starts_at(class_session) <= utc_now():
            raise ValidationError("Class has already started", "CLASS_NOT_BOOKABLE")
        existing = db.execute(
            select(models.Booking).where(
                models.Booking.class_id == class_id,
                models.Booking.student_profile_id == student_profile_id,
                models.Booking.status == models.BookingStatus.confirmed,
            )
        ).scalars().first()
        if existing:
            raise ConflictError("Student already has a booking for this class", "ALREADY_BOOKED")
        if schedule_service.count_confirmed(db, class_id) >= class_session.capacity:
            raise ClassFull()

        purchase = credit_service.select_purchase_for_booking(db, student_profile_id)
        if purchase is None:
            raise InsufficientCredits()
        credits_used = credit_service.consume_credit(purchase)

        booking = models.Booking(
            class_id=class_id,
            student_profile_id=student_profile_id,
            status=models.BookingStatus.confirmed,
            booked_at=utc_now(),
            credits_used=credits_used,
            purchase_id=purchase.id,
            payment_id=purchase.payment_id,
        )
        db.add(booking)
        waitlist_service.remove_student(db, class_id, student_profile_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(booking)

    logger.info(
        "Booking created",
        extra={
            "booking_id": booking.id,
            "class_id": class_id,
            "student_profile_id": student_profile_id,
            "credits_used": credits_used,
        },
    )
    messages = []
    if student.email:
        messages.append(
            notification_service.build_booking_confirmation(
                email=student.email, name=student.name, class_session=class_session
            )
        )
    messages.append(
        notification_service.build_admin_booking_notice(
            student_name=student.name,
            student_email=student.email,
            class_session=class_session,
        )
    )
    notification_service.send_emails(messages)
    return booking


def _classify_cancellation(
    hours_before_class: float, window_hours: int
) -> tuple[models.BookingStatus, models.CancellationType]:
    if hours_before_class < 0:
        return models.BookingStatus.no_show, models.CancellationType.no_show
    if hours_before_class < window_hours:
        return models.BookingStatus.late_cancel, models.CancellationType.late
    return models.BookingStatus.cancelled, models.CancellationType.on_time


def cancel_booking(db: Session, booking: models.Booking) -> CancellationResult:
    if booking.status != models.BookingStatus.confirmed:
        raise ValidationError("Booking is already cancelled", "ALREADY_CANCELLED")

    try:
        class_session = schedule_service.lock_class(db, booking.class_id)
        db.refresh(booking)
        if booking.status != models.BookingStatus.confirmed:
            raise ValidationError("Booking is already cancelled", "ALREADY_CANCELLED")
        now = utc_now()
        hours_before_class = (class_starts_at(class_session) - now).total_seconds() / 3600
        window_hours = schedule_service.get_cancellation_window_hours(db)
        status, cancellation_type = _classify_cancellation(hours_before_class, window_hours)

        booking.status = status
        booking.cancelled_at = now
        booking.cancellation_type = cancellation_type
        refunded = 0
        promotion = None
        if cancellation_type == models.CancellationType.on_time:
            refunded = credit_service.refund_credit(db, booking)
        if cancellation_type != models.CancellationType.no_show:
            db.flush()
            promotion = waitlist_service.run_promotion(db, class_session, auto_promote=False)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(booking)

    logger.info(
        "Booking cancelled",
        extra={
            "booking_id": booking.id,
            "cancellation_type": cancellation_type.value,
            "credits_refunded": refunded,
        },
    )
    student = booking.student
    messages = []
    if student is not None and student.email:
        messages.append(
            notification_service.build_cancellation_confirmation(
                email=student.email,
                name=student.name,
                class_session=class_session,
                credit_refunded=refunded > 0,
            )
        )
    if promotion is not None:
        messages.extend(promotion.emails)
    notification_service.send_emails(messages)
    return CancellationResult(
        booking=booking,
        cancellation_type=cancellation_type,
        hours_before_class=round(hours_before_class, 2),
        credits_refunded=refunded,
        promotion=promotion,
    )


def _parse_attendance_status(status: str | None) -> models.BookingStatus:
    if status not in ATTENDANCE_STATUSES:
        raise ValidationError(
            "Status must be one of: attended, no_show, confirmed",
            "INVALID_ATTENDANCE_STATUS",
        )
    return models.BookingStatus(status)


def mark_attendance(db: Session, booking_id: int, status: str | None) -> models.Booking:
    new_status = _parse_attendance_status(status)
    booking = get_booking(db, booking_id)
    booking.status = new_status
    db.commit()
    db.refresh(booking)
    return booking


def bulk_mark_attendance(
    db: Session,
    class_id: int | None,
    attendees: list[int],
    no_shows: list[int],
) -> dict:
    """Apply attendance for a whole class and mark it completed.

    Ids that do not belong to the class are reported in ``failures`` and do not
    block the rest; everything else lands in one commit.
    """

    if not class_id:
        raise ValidationError("classId is required", "MISSING_CLASS_ID")
    if db.get(models.ClassSession, class_id) is None:
        raise ClassNotFound(class_id)

    requested = [(booking_id, models.BookingStatus.attended) for booking_id in attendees]
    requested += [(booking_id, models.BookingStatus.no_show) for booking_id in no_shows]
    ids = {booking_id for booking_id, _ in requested}
    bookings = {
        booking.id: booking
        for booking in db.query(models.Booking).filter(models.Booking.id.in_(ids)).all()
    } if ids else {}

    updated = 0
    failures = []
    try:
        for booking_id, status in requested:
            booking = bookings.get(booking_id)
            if booking is None or booking.class_id != class_id:
                failures.append({"booking_id": booking_id, "error": "Booking not found for this class"})
                continue
            booking.status = status
            updated += 1
        class_session = schedule_service.lock_class(db, class_id)
        class_session.status = models.ClassStatus.completed
        db.commit()
    except Exception:
        db.rollback()
        raise
    if failures:
        logger.warning(
            "Attendance update skipped bookings",
            extra={"class_id": class_id, "failures": len(failures)},
        )
    return {
        "message": f"Attendance marked for {updated} bookings",
        "updated_count": updated,
        "failures": failures,
    }


__all__ = [
    "ATTENDANCE_STATUSES",
    "CancellationResult",
    "get_booking",
    "list_bookings",
    "create_booking",
    "cancel_booking",
    "mark_attendance",
    "bulk_mark_attendance",
]
