from swiftfit_api.db import models


def test_book_class_returns_created_booking(api_client, db_session, make_profile, make_class, give_package):
    client, act_as = api_client
    student = make_profile()
    class_session = make_class()
    purchase = give_package(student, credits=2)
    act_as(student)

    response = client.post("/api/bookings", json={"classId": class_session.id})

    assert response.status_code == 201
    body = response.json()
    assert body["classId"] == class_session.id
    assert body["studentProfileId"] == student.id
    assert body["status"] == "confirmed"
    assert body["creditsUsed"] == 1
    assert response.headers["X-RateLimit-Limit"] == "10"
    assert response.headers["X-RateLimit-Remaining"] == "9"
    db_session.refresh(purchase)
    assert purchase.credits_remaining == 1


def test_booking_requires_authentication(api_client, make_class):
    client, _ = api_client
    class_session = make_class()

    response = client.post("/api/bookings", json={"classId": class_session.id})

    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHORIZED"


def test_booking_requires_class_id(api_client, make_profile):
    client, act_as = api_client
    act_as(make_profile())

    response = client.post("/api/bookings", json={})

    assert response.status_code == 400
    assert response.json() == {"error": "classId is required", "code": "MISSING_CLASS_ID"}


def test_full_class_returns_conflict(api_client, make_profile, make_class, give_package):
    client, act_as = api_client
    class_session = make_class(capacity=1)
    first, second = make_profile(), make_profile()
    give_package(first)
    give_package(second)

    act_as(first)
    assert client.post("/api/bookings", json={"classId": class_session.id}).status_code == 201
    act_as(second)
    response = client.post("/api/bookings", json={"classId": class_session.id})

    assert response.status_code == 409
    assert response.json()["code"] == "CLASS_FULL"


def test_students_cannot_book_for_others(api_client, make_profile, make_class, give_package):
    client, act_as = api_client
    class_session = make_class()
    student, other = make_profile(), make_profile()
    give_package(other)
    act_as(student)

    response = client.post(
        "/api/bookings",
        json={"classId": class_session.id, "studentProfileId": other.id},
    )

    assert response.status_code == 403


def test_staff_can_book_for_a_student(api_client, make_profile, make_class, give_package):
    client, act_as = api_client
    class_session = make_class()
    student = make_profile()
    give_package(student)
    act_as(make_profile(models.UserRole.instructor))

    response = client.post(
        "/api/bookings",
        json={"classId": class_session.id, "studentProfileId": student.id},
    )

    assert response.status_code == 201
    assert response.json()["studentProfileId"] == student.id


def test_cancel_booking_reports_details(api_client, make_profile, make_class, give_package):
    client, act_as = api_client
    class_session = make_class(hours_ahead=72)
    student = make_profile()
    give_package(student, credits=1)
    act_as(student)
    booking_id = client.post("/api/bookings", json={"classId": class_session.id}).json()["id"]

    response = client.post(f"/api/bookings/{booking_id}/cancel")

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Booking cancelled successfully"
    assert body["booking"]["status"] == "cancelled"
    details = body["cancellationDetails"]
    assert details["type"] == "on_time"
    assert details["creditRefunded"] is True
    assert details["penaltyApplied"] is False
    assert details["hoursBeforeClass"] > 71


def test_cancel_unknown_booking(api_client, make_profile):
    client, act_as = api_client
    act_as(make_profile())

    response = client.post("/api/bookings/9999/cancel")

    assert response.status_code == 404
    assert response.json()["code"] == "BOOKING_NOT_FOUND"


def test_cancel_rate_limit(api_client, make_profile):
    client, act_as = api_client
    act_as(make_profile())

    statuses = [client.post("/api/bookings/9999/cancel").status_code for _ in range(6)]

    assert statuses[:5] == [404] * 5
    assert statuses[5] == 429
    response = client.post("/api/bookings/9999/cancel")
    assert response.json()["code"] == "RATE_LIMITED"
    assert response.headers["X-RateLimit-Remaining"] == "0"
    assert int(response.headers["Retry-After"]) >= 1


def test_students_only_see_their_bookings(api_client, make_profile, make_class, give_package):
    client, act_as = api_client
    class_session = make_class()
    mine, theirs = make_profile(), make_profile()
    for profile in (mine, theirs):
        give_package(profile)
        act_as(profile)
        client.post("/api/bookings", json={"classId": class_session.id})

    act_as(mine)
    response = client.get("/api/bookings", params={"classId": class_session.id})

    assert [item["studentProfileId"] for item in response.json()] == [mine.id]

    act_as(make_profile(models.UserRole.admin))
    response = client.get("/api/bookings", params={"classId": class_session.id})
    assert len(response.json()) == 2


def test_attendance_update_is_staff_only(api_client, make_profile, make_class, give_package):
    client, act_as = api_client
    class_session = make_class()
    student = make_profile()
    give_package(student)
    act_as(student)
    booking_id = client.post("/api/bookings", json={"classId": class_session.id}).json()["id"]

    forbidden = client.put(f"/api/bookings/{booking_id}/attendance", json={"status": "attended"})
    act_as(make_profile(models.UserRole.instructor))
    allowed = client.put(f"/api/bookings/{booking_id}/attendance", json={"status": "attended"})

    assert forbidden.status_code == 403
    assert allowed.status_code == 200
    assert allowed.json()["status"] == "attended"


def test_bulk_attendance_completes_class(api_client, db_session, make_profile, make_class, give_package):
    client, act_as = api_client
    class_session = make_class()
    other_class = make_class()
    came, skipped = make_profile(), make_profile()
    booking_ids = []
    for profile in (came, skipped):
        give_package(profile, credits=2)
        act_as(profile)
        booking_ids.append(client.post("/api/bookings", json={"classId": class_session.id}).json()["id"])
    stray = client.post("/api/bookings", json={"classId": other_class.id}).json()["id"]

    act_as(make_profile(models.UserRole.instructor))
    response = client.post(
        "/api/attendance",
        json={"classId": class_session.id, "attendees": [booking_ids[0], stray], "noShows": [booking_ids[1]]},
    )

    body = response.json()
    assert body["updatedCount"] == 2
    assert body["failures"] == [{"bookingId": stray, "error": "Booking not found for this class"}]
    db_session.expire_all()
    assert db_session.get(models.ClassSession, class_session.id).status == models.ClassStatus.completed
    statuses = [db_session.get(models.Booking, booking_id).status for booking_id in booking_ids]
    assert statuses == [models.BookingStatus.attended, models.BookingStatus.no_show]


def test_invalid_attendance_status(api_client, make_profile, make_class, give_package):
    client, act_as = api_client
    class_session = make_class()
    student = make_profile()
    give_package(student)
    act_as(student)
    booking_id = client.post("/api/bookings", json={"classId": class_session.id}).json()["id"]

    act_as(make_profile(models.UserRole.admin))
    response = client.put(f"/api/bookings/{booking_id}/attendance", json={"status": "late_cancel"})

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_ATTENDANCE_STATUS"
