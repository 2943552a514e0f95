from datetime import timedelta
from decimal import Decimal

import pytest

from swiftfit_api.core.errors import ValidationError
from swiftfit_api.core.timeutils import utc_now
from swiftfit_api.db import models
from swiftfit_api.services import report_service


@pytest.fixture()
def instructor(db_session):
    ana = models.Instructor(name="Ana", is_active=True)
    retired = models.Instructor(name="Retired", is_active=False)
    db_session.add_all([ana, retired])
    db_session.commit()
    return ana


@pytest.fixture()
def book(db_session):
    def factory(student, class_session, status=models.BookingStatus.confirmed, credits_used=1):
        booking = models.Booking(
            class_id=class_session.id,
            student_profile_id=student.id,
            status=status,
            credits_used=credits_used,
        )
        db_session.add(booking)
        db_session.commit()
        return booking

    return factory


def _pay(db_session, student, amount, method, status=models.PaymentStatus.completed, days_ago=0):
    payment = models.Payment(
        student_profile_id=student.id,
        amount=Decimal(amount),
        payment_method=method,
        status=status,
        payment_date=utc_now() - timedelta(days=days_ago),
    )
    db_session.add(payment)
    db_session.commit()
    return payment


def test_date_range_defaults_to_last_thirty_days():
    start, end = report_service.parse_date_range(None, None)

    assert end == utc_now().date()
    assert end - start == timedelta(days=30)


def test_open_date_range_stays_open():
    assert report_service.parse_date_range(None, None, default_days=None) == (None, None)


@pytest.mark.parametrize(
    "start, end, code",
    [
        ("2025/01/01", None, "INVALID_DATE_FORMAT"),
        (None, "tomorrow", "INVALID_DATE_FORMAT"),
        ("2025-02-01", "2025-01-01", "INVALID_DATE_RANGE"),
    ],
)
def test_date_range_validation(start, end, code):
    with pytest.raises(ValidationError) as exc_info:
        report_service.parse_date_range(start, end)

    assert exc_info.value.code == code


def test_revenue_report_totals_and_breakdown(db_session, make_profile):
    student = make_profile()
    _pay(db_session, student, "100.00", models.PaymentMethodType.square)
    _pay(db_session, student, "50.00", models.PaymentMethodType.cash)
    _pay(db_session, student, "10.00", models.PaymentMethodType.stub)
    _pay(db_session, student, "20.00", models.PaymentMethodType.square, models.PaymentStatus.pending)
    _pay(db_session, student, "30.00", models.PaymentMethodType.square, models.PaymentStatus.refunded)
    _pay(db_session, student, "999.00", models.PaymentMethodType.square, days_ago=60)

    report = report_service.revenue_report(db_session)

    assert report["total_revenue"] == 160.0
    assert report["total_transactions"] == 3
    assert report["average_transaction_amount"] == 53.33
    assert report["payment_method_breakdown"] == {"square": 100.0, "cash": 50.0, "other": 10.0}
    assert report["pending_payments"] == 20.0
    assert report["refunded_amount"] == 30.0
    assert report["revenue_by_date"] == [{"date": utc_now().date().isoformat(), "revenue": 160.0}]
    assert report["filters"] == {"payment_method": "all"}


def test_revenue_report_filters_by_method(db_session, make_profile):
    student = make_profile()
    _pay(db_session, student, "100.00", models.PaymentMethodType.square)
    _pay(db_session, student, "50.00", models.PaymentMethodType.cash)

    report = report_service.revenue_report(db_session, payment_method="Cash")

    assert report["total_revenue"] == 50.0
    assert report["filters"] == {"payment_method": "cash"}
    with pytest.raises(ValidationError) as exc_info:
        report_service.revenue_report(db_session, payment_method="bitcoin")
    assert exc_info.value.code == "INVALID_PAYMENT_METHOD"


def test_attendance_report_rates(db_session, make_profile, make_class, book):
    past = make_class(hours_ahead=-48, status=models.ClassStatus.completed)
    book(make_profile(), past, models.BookingStatus.attended)
    book(make_profile(), past, models.BookingStatus.no_show)
    book(make_profile(), past, models.BookingStatus.cancelled)
    book(make_profile(), past, models.BookingStatus.confirmed)

    report = report_service.attendance_report(db_session)

    assert report["total_bookings"] == 4
    assert report["completed_classes"] == 1
    assert report["attended_bookings"] == 1
    assert report["cancelled_bookings"] == 1
    assert report["no_shows"] == 1
    assert report["attendance_rate"] == 50.0
    assert report["cancellation_rate"] == 25.0
    assert report["no_show_rate"] == 25.0
    assert report["average_bookings_per_class"] == 4.0


def test_attendance_report_without_bookings(db_session):
    report = report_service.attendance_report(db_session)

    assert report["total_bookings"] == 0
    assert report["attendance_rate"] == 0.0
    assert report["average_bookings_per_class"] == 0.0


def test_popular_classes_ranks_by_bookings(db_session, make_profile, make_class, book, instructor):
    busy = make_class(hours_ahead=-24)
    quiet = make_class(hours_ahead=-50)
    for class_session in (busy, quiet):
        class_session.instructor_id = instructor.id
    db_session.commit()
    book(make_profile(), busy)
    book(make_profile(), busy, models.BookingStatus.attended)
    book(make_profile(), busy, models.BookingStatus.late_cancel)
    book(make_profile(), quiet)

    report = report_service.popular_classes_report(db_session, limit=5)

    top = report["top_classes"][0]
    assert top["class_id"] == busy.id
    assert top["class_type_name"] == "Reformer"
    assert (top["booking_count"], top["confirmed_count"], top["cancelled_count"]) == (3, 2, 1)
    assert [row["class_id"] for row in report["top_classes"]] == [busy.id, quiet.id]
    assert report["top_class_types"] == [
        {
            "class_type_id": busy.class_type_id,
            "class_type_name": "Reformer",
            "total_bookings": 4,
            "confirmed_bookings": 3,
        }
    ]
    assert report["top_instructors"][0]["instructor_name"] == "Ana"
    assert report["top_instructors"][0]["classes_count"] == 2
    assert report["top_instructors"][0]["total_bookings"] == 4
    assert report["most_popular_time_slots"][0]["total_bookings"] == 3


def test_instructor_report_counts_marked_attendance(db_session, make_profile, make_class, book, instructor):
    first = make_class(hours_ahead=-24)
    second = make_class(hours_ahead=-48)
    for class_session in (first, second):
        class_session.instructor_id = instructor.id
    db_session.commit()
    book(make_profile(), first, models.BookingStatus.attended)
    book(make_profile(), first, models.BookingStatus.attended)
    book(make_profile(), second, models.BookingStatus.no_show)
    book(make_profile(), second, models.BookingStatus.confirmed, credits_used=0)

    report = report_service.instructor_revenue_report(db_session)

    assert [row["instructor_name"] for row in report["instructors"]] == ["Ana"]
    ana = report["instructors"][0]
    assert ana["total_classes"] == 2
    assert ana["total_bookings"] == 4
    assert ana["total_attended"] == 2
    assert ana["total_no_shows"] == 1
    assert ana["total_confirmed"] == 1
    assert ana["attendance_rate"] == 67
    assert ana["total_credits_used"] == 3
    assert ana["avg_bookings_per_class"] == 2.0
    assert report["totals"]["overall_attendance_rate"] == 67
    assert report["date_range"] == {"start_date": "all time", "end_date": "present"}


def test_instructor_report_honours_date_range(db_session, make_profile, make_class, book, instructor):
    old = make_class(hours_ahead=-24 * 40)
    old.instructor_id = instructor.id
    db_session.commit()
    book(make_profile(), old, models.BookingStatus.attended)
    since = (utc_now().date() - timedelta(days=7)).isoformat()

    report = report_service.instructor_revenue_report(db_session, start_date=since)

    assert report["instructors"][0]["total_classes"] == 0
    assert report["instructors"][0]["total_bookings"] == 0
    assert report["date_range"]["start_date"] == since
