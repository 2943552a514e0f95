from datetime import timedelta

from swiftfit_api.core.timeutils import utc_now
from swiftfit_api.db import models


def test_schedule_and_mark_sent(api_client, make_profile):
    client, act_as = api_client
    student = make_profile()
    act_as(make_profile(models.UserRole.admin))
    last_class = (utc_now().date() - timedelta(days=40)).isoformat()

    created = client.post(
        "/api/class-reminders/schedule",
        json={"studentProfileId": student.id, "lastClassDate": last_class},
    )

    assert created.status_code == 201
    reminder = created.json()
    assert reminder["reminderSent"] is False
    due = client.get("/api/class-reminders/due").json()
    assert due["count"] == 1
    assert due["dueReminders"][0]["id"] == reminder["id"]

    marked = client.post("/api/class-reminders/mark-sent", json={"reminderId": str(reminder["id"])})

    assert marked.status_code == 200
    assert marked.json()["reminderSent"] is True
    assert client.get("/api/class-reminders/due").json()["count"] == 0


def test_reminder_is_due_thirty_days_after_last_class(api_client, make_profile):
    client, act_as = api_client
    act_as(make_profile(models.UserRole.admin))

    created = client.post(
        "/api/class-reminders/schedule",
        json={"email": "lapsed@example.com", "lastClassDate": "2025-01-01"},
    )

    assert created.status_code == 201
    assert created.json()["lastClassDate"] == "2025-01-01"
    assert created.json()["reminderScheduledFor"] == "2025-01-31"


def test_schedule_validates_input(api_client, make_profile):
    client, act_as = api_client
    act_as(make_profile(models.UserRole.admin))

    bad_format = client.post(
        "/api/class-reminders/schedule",
        json={"email": "a@example.com", "lastClassDate": "03/01/2026"},
    )
    no_target = client.post("/api/class-reminders/schedule", json={"lastClassDate": "2026-03-01"})
    bad_id = client.post("/api/class-reminders/mark-sent", json={"reminderId": "abc"})
    missing = client.post("/api/class-reminders/mark-sent", json={"reminderId": 999})

    assert bad_format.json()["code"] == "INVALID_DATE_FORMAT"
    assert no_target.json()["code"] == "MISSING_IDENTIFIER"
    assert bad_id.json()["code"] == "INVALID_REMINDER_ID"
    assert missing.status_code == 404


def test_reminders_are_staff_only(api_client, make_profile):
    client, act_as = api_client
    act_as(make_profile())

    assert client.get("/api/class-reminders/due").status_code == 403
