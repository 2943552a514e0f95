import httpx
import pytest

from swiftfit_api.config import get_settings
from swiftfit_api.db import models
from swiftfit_api.services import booking_service, notification_service, waitlist_service


@pytest.fixture()
def unreachable_resend(monkeypatch):
    monkeypatch.setenv("RESEND_API_KEY", "re_test_key")
    get_settings.cache_clear()
    attempts = []
    original_post = httpx.Client.post

    def post(self, url, **kwargs):
        if str(url) != notification_service.RESEND_API_URL:
            return original_post(self, url, **kwargs)
        attempts.append(kwargs["json"]["to"][0])
        raise httpx.ConnectError("connection refused", request=httpx.Request("POST", url))

    monkeypatch.setattr(httpx.Client, "post", post)
    return attempts


def test_send_emails_counts_only_delivered(unreachable_resend):
    message = notification_service.EmailMessage(to="a@example.com", subject="Hi", html="<p>Hi</p>")

    assert notification_service.send_emails([message, None]) == 0
    assert notification_service.send_email(message) is False
    assert unreachable_resend == ["a@example.com", "a@example.com"]


def test_booking_survives_email_outage(db_session, make_profile, make_class, give_package, unreachable_resend):
    student = make_profile(email="student@example.com")
    class_session = make_class()
    purchase = give_package(student, credits=2)

    booking = booking_service.create_booking(db_session, class_session.id, student.id)

    assert booking.status == models.BookingStatus.confirmed
    assert "student@example.com" in unreachable_resend
    db_session.refresh(purchase)
    assert purchase.credits_remaining == 1


def test_api_booking_survives_email_outage(api_client, make_profile, make_class, give_package, unreachable_resend):
    client, act_as = api_client
    student = make_profile(email="api-student@example.com")
    class_session = make_class()
    give_package(student)
    act_as(student)

    response = client.post("/api/bookings", json={"classId": class_session.id})

    assert response.status_code == 201
    assert response.json()["status"] == "confirmed"
    assert "api-student@example.com" in unreachable_resend


def test_promotion_survives_email_outage(db_session, make_profile, make_class, unreachable_resend):
    class_session = make_class(capacity=1)
    waiting = make_profile(email="waiting@example.com")
    waitlist_service.join(db_session, class_session.id, waiting.id)

    outcome = waitlist_service.promote(db_session, class_session.id, auto_promote=True)

    assert outcome.promoted_count == 1
    assert unreachable_resend == ["waiting@example.com"]
    bookings = booking_service.list_bookings(db_session, class_id=class_session.id)
    assert [b.student_profile_id for b in bookings] == [waiting.id]
    assert bookings[0].status == models.BookingStatus.confirmed
