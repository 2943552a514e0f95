from decimal import Decimal

from swiftfit_api.core.timeutils import utc_now
from swiftfit_api.db import models


def test_reports_are_admin_only(api_client, make_profile):
    client, act_as = api_client
    act_as(make_profile(models.UserRole.instructor))

    for path in ("revenue", "attendance", "popular-classes", "instructor-revenue"):
        response = client.get(f"/api/admin/reports/{path}")
        assert response.status_code == 403


def test_revenue_report_endpoint(api_client, db_session, make_profile):
    client, act_as = api_client
    student = make_profile()
    db_session.add(
        models.Payment(
            student_profile_id=student.id,
            amount=Decimal("25.00"),
            payment_method=models.PaymentMethodType.square,
            status=models.PaymentStatus.completed,
            payment_date=utc_now(),
        )
    )
    db_session.commit()
    act_as(make_profile(models.UserRole.admin))

    response = client.get("/api/admin/reports/revenue", params={"paymentMethod": "square"})

    assert response.status_code == 200
    body = response.json()
    assert body["totalRevenue"] == 25.0
    assert body["paymentMethodBreakdown"]["square"] == 25.0
    assert body["filters"] == {"paymentMethod": "square"}
    assert body["dateRange"]["endDate"] == utc_now().date().isoformat()


def test_report_date_validation(api_client, make_profile):
    client, act_as = api_client
    act_as(make_profile(models.UserRole.admin))

    bad_format = client.get("/api/admin/reports/attendance", params={"startDate": "01-02-2025"})
    bad_range = client.get(
        "/api/admin/reports/popular-classes",
        params={"startDate": "2025-03-01", "endDate": "2025-02-01"},
    )

    assert bad_format.status_code == 400
    assert bad_format.json()["code"] == "INVALID_DATE_FORMAT"
    assert bad_range.json()["code"] == "INVALID_DATE_RANGE"


def test_popular_and_instructor_reports_serialize(api_client, db_session, make_profile, make_class):
    client, act_as = api_client
    instructor = models.Instructor(name="Ana")
    db_session.add(instructor)
    db_session.commit()
    class_session = make_class(hours_ahead=-24)
    class_session.instructor_id = instructor.id
    db_session.add(
        models.Booking(
            class_id=class_session.id,
            student_profile_id=make_profile().id,
            status=models.BookingStatus.attended,
            credits_used=1,
        )
    )
    db_session.commit()
    act_as(make_profile(models.UserRole.admin))

    popular = client.get("/api/admin/reports/popular-classes").json()
    instructors = client.get("/api/admin/reports/instructor-revenue").json()

    assert popular["topClasses"][0]["classId"] == class_session.id
    assert popular["topClasses"][0]["date"] == class_session.date.isoformat()
    assert popular["topInstructors"][0]["instructorName"] == "Ana"
    assert instructors["instructors"][0]["totalAttended"] == 1
    assert instructors["instructors"][0]["attendanceRate"] == 100
    assert instructors["totals"]["totalInstructors"] == 1
