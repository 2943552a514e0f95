"""Admin reporting: revenue, attendance, popular classes and instructor stats."""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from ..core.errors import ValidationError
from ..core.timeutils import as_utc, utc_now
from ..db import models

DEFAULT_RANGE_DAYS = 30
DEFAULT_TOP_LIMIT = 10
MAX_TOP_LIMIT = 100

_CANCELLED = (models.BookingStatus.cancelled, models.BookingStatus.late_cancel)


def _parse_date(value: str, field: str) -> date:
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError as exc:
        raise ValidationError(
            f"{field} must be in YYYY-MM-DD format", "INVALID_DATE_FORMAT"
        ) from exc


def parse_date_range(
    start_date: str | None,
    end_date: str | None,
    *,
    default_days: int | None = DEFAULT_RANGE_DAYS,
) -> tuple[date | None, date | None]:
    """Resolve optional ``YYYY-MM-DD`` bounds.

    With ``default_days`` set, a missing end is today and a missing start is
    that many days before today. With ``default_days=None`` missing bounds stay
    open.
    """

    today = utc_now().date()
    end = _parse_date(end_date, "endDate") if end_date else None
    start = _parse_date(start_date, "startDate") if start_date else None
    if default_days is not None:
        end = end or today
        start = start or today - timedelta(days=default_days)
    if start and end and start > end:
        raise ValidationError(
            "Start date must be before or equal to end date", "INVALID_DATE_RANGE"
        )
    return start, end


def _money(value) -> float:
    return round(float(value or 0), 2)


def _percent(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


def _day_bounds(start: date, end: date) -> tuple[datetime, datetime]:
    return (
        datetime.combine(start, time.min, tzinfo=timezone.utc),
        datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc),
    )


def revenue_report(
    db: Session,
    *,
    start_date: str | None = None,
    end_date: str | None = None,
    payment_method: str | None = None,
) -> dict:
    start, end = parse_date_range(start_date, end_date)
    method = None
    if payment_method:
        try:
            method = models.PaymentMethodType(payment_method.lower())
        except ValueError as exc:
            raise ValidationError("Unknown payment method", "INVALID_PAYMENT_METHOD") from exc

    lower, upper = _day_bounds(start, end)
    query = db.query(models.Payment).filter(
        models.Payment.payment_date >= lower,
        models.Payment.payment_date < upper,
    )
    if method is not None:
        query = query.filter(models.Payment.payment_method == method)
    payments = query.order_by(models.Payment.payment_date).all()

    completed = [p for p in payments if p.status == models.PaymentStatus.completed]
    total = sum(float(p.amount) for p in completed)
    breakdown = {"square": 0.0, "cash": 0.0, "other": 0.0}
    by_date: dict[str, float] = defaultdict(float)
    for payment in completed:
        bucket = payment.payment_method.value
        breakdown[bucket if bucket in breakdown else "other"] += float(payment.amount)
        by_date[as_utc(payment.payment_date).date().isoformat()] += float(payment.amount)

    return {
        "total_revenue": _money(total),
        "total_transactions": len(completed),
        "average_transaction_amount": _money(total / len(completed)) if completed else 0.0,
        "payment_method_breakdown": {key: _money(value) for key, value in breakdown.items()},
        "pending_payments": _money(
            sum(float(p.amount) for p in payments if p.status == models.PaymentStatus.pending)
        ),
        "refunded_amount": _money(
            sum(float(p.amount) for p in payments if p.status == models.PaymentStatus.refunded)
        ),
        "revenue_by_date": [
            {"date": day, "revenue": _money(amount)} for day, amount in sorted(by_date.items())
        ],
        "date_range": {"start_date": start.isoformat(), "end_date": end.isoformat()},
        "filters": {"payment_method": method.value if method else "all"},
    }


def attendance_report(db: Session, *, start_date: str | None = None, end_date: str | None = None) -> dict:
    start, end = parse_date_range(start_date, end_date)
    rows = (
        db.query(models.Booking.status, models.Booking.class_id, models.ClassSession.status)
        .select_from(models.Booking)
        .join(models.ClassSession, models.Booking.class_id == models.ClassSession.id)
        .filter(models.ClassSession.date >= start, models.ClassSession.date <= end)
        .all()
    )
    total = len(rows)
    counts: dict[models.BookingStatus, int] = defaultdict(int)
    class_ids = set()
    completed_ids = set()
    for booking_status, class_id, class_status in rows:
        counts[booking_status] += 1
        class_ids.add(class_id)
        if class_status == models.ClassStatus.completed:
            completed_ids.add(class_id)

    cancelled = sum(counts[status] for status in _CANCELLED)
    no_shows = counts[models.BookingStatus.no_show]
    attended = counts[models.BookingStatus.attended]
    confirmed = counts[models.BookingStatus.confirmed]
    return {
        "total_bookings": total,
        "completed_classes": len(completed_ids),
        "attended_bookings": attended,
        "cancelled_bookings": cancelled,
        "no_shows": no_shows,
        "attendance_rate": _percent(attended + confirmed, total),
        "cancellation_rate": _percent(cancelled, total),
        "no_show_rate": _percent(no_shows, total),
        "average_bookings_per_class": round(total / len(class_ids), 2) if class_ids else 0.0,
        "date_range": {"start_date": start.isoformat(), "end_date": end.isoformat()},
    }


def _status_sum(*statuses: models.BookingStatus):
    return func.coalesce(
        func.sum(case((models.Booking.status.in_(statuses), 1), else_=0)), 0
    )


def popular_classes_report(
    db: Session,
    *,
    start_date: str | None = None,
    end_date: str | None = None,
    limit: int | None = None,
) -> dict:
    start, end = parse_date_range(start_date, end_date)
    limit = min(limit or DEFAULT_TOP_LIMIT, MAX_TOP_LIMIT)
    booking_count = func.count(models.Booking.id)
    confirmed = _status_sum(models.BookingStatus.confirmed, models.BookingStatus.attended)
    in_range = (models.ClassSession.date >= start, models.ClassSession.date <= end)

    top_classes = (
        db.query(
            models.ClassSession.id,
            models.ClassSession.class_type_id,
            models.ClassType.name,
            models.ClassSession.instructor_id,
            models.ClassSession.date,
            models.ClassSession.start_time,
            booking_count,
            confirmed,
            _status_sum(*_CANCELLED, models.BookingStatus.no_show),
        )
        .select_from(models.ClassSession)
        .outerjoin(models.Booking, models.Booking.class_id == models.ClassSession.id)
        .outerjoin(models.ClassType, models.ClassType.id == models.ClassSession.class_type_id)
        .filter(*in_range)
        .group_by(
            models.ClassSession.id,
            models.ClassSession.class_type_id,
            models.ClassType.name,
            models.ClassSession.instructor_id,
            models.ClassSession.date,
            models.ClassSession.start_time,
        )
        .order_by(booking_count.desc(), models.ClassSession.id)
        .limit(limit)
        .all()
    )
    top_class_types = (
        db.query(models.ClassType.id, models.ClassType.name, booking_count, confirmed)
        .select_from(models.ClassType)
        .join(models.ClassSession, models.ClassSession.class_type_id == models.ClassType.id)
        .outerjoin(models.Booking, models.Booking.class_id == models.ClassSession.id)
        .filter(*in_range)
        .group_by(models.ClassType.id, models.ClassType.name)
        .order_by(booking_count.desc(), models.ClassType.id)
        .limit(limit)
        .all()
    )
    classes_count = func.count(func.distinct(models.ClassSession.id))
    top_instructors = (
        db.query(models.Instructor.id, models.Instructor.name, booking_count, confirmed, classes_count)
        .select_from(models.Instructor)
        .join(models.ClassSession, models.ClassSession.instructor_id == models.Instructor.id)
        .outerjoin(models.Booking, models.Booking.class_id == models.ClassSession.id)
        .filter(*in_range)
        .group_by(models.Instructor.id, models.Instructor.name)
        .order_by(booking_count.desc(), models.Instructor.id)
        .limit(limit)
        .all()
    )
    time_slots = (
        db.query(models.ClassSession.start_time, booking_count, confirmed, classes_count)
        .select_from(models.ClassSession)
        .outerjoin(models.Booking, models.Booking.class_id == models.ClassSession.id)
        .filter(*in_range)
        .group_by(models.ClassSession.start_time)
        .order_by(booking_count.desc(), models.ClassSession.start_time)
        .limit(limit)
        .all()
    )

    return {
        "top_classes": [
            {
                "class_id": class_id,
                "class_type_id": class_type_id,
                "class_type_name": class_type_name,
                "instructor_id": instructor_id,
                "date": class_date,
                "start_time": start_time,
                "booking_count": int(total),
                "confirmed_count": int(kept),
                "cancelled_count": int(dropped),
            }
            for (
                class_id,
                class_type_id,
                class_type_name,
                instructor_id,
                class_date,
                start_time,
                total,
                kept,
                dropped,
            ) in top_classes
        ],
        "top_class_types": [
            {
                "class_type_id": type_id,
                "class_type_name": name,
                "total_bookings": int(total),
                "confirmed_bookings": int(kept),
            }
            for type_id, name, total, kept in top_class_types
        ],
        "top_instructors": [
            {
                "instructor_id": instructor_id,
                "instructor_name": name,
                "total_bookings": int(total),
                "confirmed_bookings": int(kept),
                "classes_count": int(count),
            }
            for instructor_id, name, total, kept, count in top_instructors
        ],
        "most_popular_time_slots": [
            {
                "time_slot": slot,
                "total_bookings": int(total),
                "confirmed_bookings": int(kept),
                "classes_count": int(count),
            }
            for slot, total, kept, count in time_slots
        ],
        "date_range": {"start_date": start.isoformat(), "end_date": end.isoformat()},
    }


def instructor_revenue_report(
    db: Session, *, start_date: str | None = None, end_date: str | None = None
) -> dict:
    """Per-instructor booking and attendance figures for active instructors.

    Without dates the report covers all time. The attendance rate only counts
    bookings that were marked (attended or no-show).
    """

    start, end = parse_date_range(start_date, end_date, default_days=None)
    query = (
        db.query(
            models.Booking.status,
            models.Booking.credits_used,
            models.ClassSession.id,
            models.ClassSession.instructor_id,
        )
        .select_from(models.Booking)
        .join(models.ClassSession, models.Booking.class_id == models.ClassSession.id)
        .filter(models.ClassSession.instructor_id.isnot(None))
    )
    classes = db.query(models.ClassSession.id, models.ClassSession.instructor_id).filter(
        models.ClassSession.instructor_id.isnot(None)
    )
    if start:
        query = query.filter(models.ClassSession.date >= start)
        classes = classes.filter(models.ClassSession.date >= start)
    if end:
        query = query.filter(models.ClassSession.date <= end)
        classes = classes.filter(models.ClassSession.date <= end)

    taught: dict[int, set] = defaultdict(set)
    for class_id, instructor_id in classes.all():
        taught[instructor_id].add(class_id)
    stats: dict[int, dict] = defaultdict(lambda: defaultdict(int))
    for booking_status, credits_used, _, instructor_id in query.all():
        row = stats[instructor_id]
        row["total_bookings"] += 1
        row["total_credits_used"] += credits_used or 0
        if booking_status == models.BookingStatus.attended:
            row["total_attended"] += 1
        elif booking_status == models.BookingStatus.no_show:
            row["total_no_shows"] += 1
        elif booking_status == models.BookingStatus.confirmed:
            row["total_confirmed"] += 1

    instructors = (
        db.query(models.Instructor)
        .filter(models.Instructor.is_active.is_(True))
        .order_by(models.Instructor.id)
        .all()
    )
    results = []
    for instructor in instructors:
        row = stats[instructor.id]
        class_count = len(taught[instructor.id])
        attended = row["total_attended"]
        no_shows = row["total_no_shows"]
        results.append(
            {
                "instructor_id": instructor.id,
                "instructor_name": instructor.name,
                "instructor_email": instructor.profile.email if instructor.profile else None,
                "total_classes": class_count,
                "total_bookings": row["total_bookings"],
                "total_attended": attended,
                "total_no_shows": no_shows,
                "total_confirmed": row["total_confirmed"],
                "attendance_rate": round(_percent(attended, attended + no_shows)),
                "total_credits_used": row["total_credits_used"],
                "avg_bookings_per_class": round(row["total_bookings"] / class_count, 1) if class_count else 0.0,
            }
        )
    results.sort(key=lambda item: item["total_bookings"], reverse=True)

    attended = sum(item["total_attended"] for item in results)
    no_shows = sum(item["total_no_shows"] for item in results)
    return {
        "instructors": results,
        "totals": {
            "total_instructors": len(results),
            "total_classes": sum(item["total_classes"] for item in results),
            "total_bookings": sum(item["total_bookings"] for item in results),
            "total_attended": attended,
            "total_no_shows": no_shows,
            "total_credits_used": sum(item["total_credits_used"] for item in results),
            "overall_attendance_rate": round(_percent(attended, attended + no_shows)),
        },
        "date_range": {
            "start_date": start.isoformat() if start else "all time",
            "end_date": end.isoformat() if end else "present",
        },
    }


__all__ = [
    "parse_date_range",
    "revenue_report",
    "attendance_report",
    "popular_classes_report",
    "instructor_revenue_report",
]
