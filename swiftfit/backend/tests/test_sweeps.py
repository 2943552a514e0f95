from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from swiftfit_api.core.timeutils import as_utc, utc_now
from swiftfit_api.db import models
from swiftfit_api.services import credit_service, reminder_service


def test_expire_credits_deactivates_lapsed_packages(db_session, make_profile, give_package):
    student = make_profile()
    lapsed = give_package(student, credits=3, expires_in_days=-1)
    current = give_package(student, credits=2, expires_in_days=5)
    empty = give_package(student, credits=0, expires_in_days=-1)

    details = credit_service.expire_credits(db_session)

    assert [item["purchase_id"] for item in details] == [lapsed.id]
    assert details[0]["credits_expired"] == 3
    db_session.refresh(lapsed)
    db_session.refresh(current)
    db_session.refresh(empty)
    assert lapsed.is_active is False
    assert current.is_active is True
    assert empty.is_active is True


def test_expire_credits_is_idempotent(db_session, make_profile, give_package):
    student = make_profile()
    give_package(student, credits=3, expires_in_days=-1)

    assert len(credit_service.expire_credits(db_session)) == 1
    assert credit_service.expire_credits(db_session) == []


def test_renewal_extends_membership_by_one_term(db_session, make_profile, give_membership):
    student = make_profile()
    purchase = give_membership(
        student,
        unlimited=False,
        credits_per_month=8,
        expires_in=timedelta(hours=6),
        auto_renew=True,
    )
    purchase.credits_remaining = 1
    db_session.commit()
    old_expiry = as_utc(purchase.expires_at)

    summary = credit_service.process_renewals(db_session)

    assert summary["total_processed"] == 1
    assert summary["successful_renewals"] == 1
    assert summary["failed_renewals"] == 0
    db_session.refresh(purchase)
    assert as_utc(purchase.expires_at) - old_expiry == timedelta(days=30)
    assert as_utc(purchase.next_billing_date) - as_utc(purchase.expires_at) == timedelta(days=30)
    assert purchase.credits_remaining == 8
    payment = db_session.get(models.Payment, purchase.payment_id)
    assert payment.status == models.PaymentStatus.completed
    assert payment.external_payment_id.startswith("auto_renewal_")
    assert payment.external_payment_id.endswith(f"_{purchase.id}")


def test_renewal_skips_memberships_outside_window(db_session, make_profile, give_membership):
    student = make_profile()
    give_membership(student, expires_in=timedelta(days=5), auto_renew=True)
    give_membership(student, expires_in=timedelta(hours=3), auto_renew=False)

    summary = credit_service.process_renewals(db_session)

    assert summary["total_processed"] == 0
    assert summary["renewals"] == []


def test_renewal_reports_missing_membership(db_session, make_profile, give_membership):
    student = make_profile()
    purchase = give_membership(student, expires_in=timedelta(hours=2), auto_renew=True)
    purchase.membership_id = None
    db_session.commit()

    summary = credit_service.process_renewals(db_session)

    assert summary["failed_renewals"] == 1
    assert summary["renewals"][0]["status"] == "failed"
    assert summary["renewals"][0]["error"]


def test_renewal_database_error_does_not_abort_batch(db_session, make_profile, give_membership, monkeypatch):
    now = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
    monkeypatch.setattr(credit_service, "utc_now", lambda: now)
    student = make_profile()
    first = give_membership(student, expires_in=timedelta(hours=2), auto_renew=True)
    second = give_membership(student, expires_in=timedelta(hours=3), auto_renew=True)
    first.expires_at = now + timedelta(hours=2)
    second.expires_at = now + timedelta(hours=3)
    db_session.add(
        models.Payment(
            student_profile_id=student.id,
            amount=Decimal("199.00"),
            payment_method=models.PaymentMethodType.square,
            external_payment_id=f"auto_renewal_{int(now.timestamp() * 1000)}_{first.id}",
            status=models.PaymentStatus.completed,
        )
    )
    db_session.commit()
    second_expiry = as_utc(second.expires_at)

    summary = credit_service.process_renewals(db_session)

    assert summary["total_processed"] == 2
    assert summary["successful_renewals"] == 1
    assert [item["status"] for item in summary["renewals"]] == ["failed", "success"]
    assert summary["renewals"][0]["purchase_id"] == first.id
    assert summary["renewals"][0]["membership_name"] == "Unlimited"
    db_session.refresh(second)
    assert as_utc(second.expires_at) == second_expiry + timedelta(days=30)
    assert db_session.get(models.Payment, second.payment_id).status == models.PaymentStatus.completed


def _reminder(db_session, student=None, email=None, days_ago=31):
    last = utc_now().date() - timedelta(days=days_ago)
    reminder = models.ClassReminder(
        student_profile_id=student.id if student else None,
        email=email,
        last_class_date=last,
        reminder_scheduled_for=last + timedelta(days=30),
        reminder_sent=False,
    )
    db_session.add(reminder)
    db_session.commit()
    return reminder


def test_reminder_sweep_sends_and_skips(db_session, make_profile, monkeypatch):
    delivered = []
    monkeypatch.setattr(
        reminder_service.notification_service,
        "send_email",
        lambda message: delivered.append(message.to) is None,
    )
    active = make_profile(email="active@example.com")
    opted_out = make_profile(email="quiet@example.com", email_reminders=False)
    sent = _reminder(db_session, student=active)
    skipped = _reminder(db_session, student=opted_out)
    missing = _reminder(db_session)
    not_due = _reminder(db_session, email="later@example.com", days_ago=3)

    result = reminder_service.send_due_reminders(db_session)

    assert result["sent"] == 1
    assert result["skipped"] == 1
    assert result["failed"] == 1
    assert result["errors"] == [f"Reminder {missing.id}: No email"]
    assert delivered == ["active@example.com"]
    for reminder in (sent, skipped, missing, not_due):
        db_session.refresh(reminder)
    assert sent.reminder_sent is True
    assert skipped.reminder_sent is True
    assert missing.reminder_sent is False
    assert not_due.reminder_sent is False


def test_due_reminders_only_lists_unsent(db_session):
    due = _reminder(db_session, email="due@example.com")
    sent = _reminder(db_session, email="done@example.com")
    sent.reminder_sent = True
    db_session.commit()

    reminders = reminder_service.due_reminders(db_session)

    assert [r.id for r in reminders] == [due.id]
    assert reminders[0].reminder_scheduled_for <= date.today() + timedelta(days=1)


def _book(db_session, student, class_session):
    booking = models.Booking(
        class_id=class_session.id,
        student_profile_id=student.id,
        status=models.BookingStatus.confirmed,
        credits_used=1,
    )
    db_session.add(booking)
    db_session.commit()
    return booking


def test_pre_class_reminders_respect_each_window(db_session, make_profile, make_class, monkeypatch):
    delivered = []
    monkeypatch.setattr(
        reminder_service.notification_service,
        "send_email",
        lambda message: delivered.append((message.to, message.subject)) is None,
    )
    soon = make_class(hours_ahead=5)
    imminent = make_class(hours_ahead=0.5)
    later = make_class(hours_ahead=30)
    due = _book(db_session, make_profile(email="due@example.com"), soon)
    opted_out = _book(db_session, make_profile(email="quiet@example.com", email_reminders=False), soon)
    short_window = _book(db_session, make_profile(email="short@example.com", reminder_hours_before=2), soon)
    too_late = _book(db_session, make_profile(email="late@example.com"), imminent)
    too_early = _book(db_session, make_profile(email="early@example.com"), later)

    result = reminder_service.send_pre_class_reminders(db_session)

    assert result["bookings_checked"] == 5
    assert result["sent"] == 1
    assert result["skipped"] == 1
    assert result["failed"] == 0
    assert delivered == [("due@example.com", "Reminder: Reformer in 5 hours")]
    for booking in (due, opted_out, short_window, too_late, too_early):
        db_session.refresh(booking)
    assert due.reminder_sent_at is not None
    assert opted_out.reminder_sent_at is not None
    assert short_window.reminder_sent_at is None
    assert too_late.reminder_sent_at is None
    assert too_early.reminder_sent_at is None


def test_pre_class_reminder_is_sent_once(db_session, make_profile, make_class, monkeypatch):
    delivered = []
    monkeypatch.setattr(
        reminder_service.notification_service,
        "send_email",
        lambda message: delivered.append(message.to) is None,
    )
    _book(db_session, make_profile(email="once@example.com"), make_class(hours_ahead=3))

    first = reminder_service.send_pre_class_reminders(db_session)
    second = reminder_service.send_pre_class_reminders(db_session)

    assert first["sent"] == 1
    assert second["sent"] == 0
    assert second["bookings_checked"] == 0
    assert delivered == ["once@example.com"]


def test_pre_class_reminder_retries_after_failed_delivery(db_session, make_profile, make_class, monkeypatch):
    monkeypatch.setattr(reminder_service.notification_service, "send_email", lambda message: False)
    booking = _book(db_session, make_profile(email="retry@example.com"), make_class(hours_ahead=3))

    result = reminder_service.send_pre_class_reminders(db_session)

    assert result["failed"] == 1
    assert result["errors"] == [f"Booking {booking.id}: Email delivery failed"]
    db_session.refresh(booking)
    assert booking.reminder_sent_at is None
