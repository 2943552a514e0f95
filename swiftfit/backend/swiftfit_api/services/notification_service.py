from __future__ import annotations

import html
import logging
from dataclasses import dataclass
from datetime import date

import httpx

from ..config import get_settings
from ..core.timeutils import class_starts_at, studio_timezone
from ..db import models

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


@dataclass(slots=True)
class EmailMessage:
    to: str
    subject: str
    html: str


def describe_class(class_session: models.ClassSession) -> str:
    name = class_session.class_type.name if class_session.class_type else "Class"
    local_dt = class_starts_at(class_session).astimezone(studio_timezone())
    formatted = local_dt.strftime("%A, %B %d at %I:%M %p").replace(" 0", " ")
    return f"{name} on {formatted}"


def _greeting(name: str | None) -> str:
    return f"<p>Hi {html.escape(name or 'there')},</p>"


def build_booking_confirmation(
    *, email: str, name: str | None, class_session: models.ClassSession
) -> EmailMessage:
    label = html.escape(describe_class(class_session))
    return EmailMessage(
        to=email,
        subject="Your class is booked",
        html=f"{_greeting(name)}<p>You're booked for {label}. See you there!</p>",
    )


def build_admin_booking_notice(
    *, student_name: str | None, student_email: str | None, class_session: models.ClassSession
) -> EmailMessage | None:
    admin_email = get_settings().admin_email
    if not admin_email:
        return None
    who = html.escape(student_name or student_email or "A student")
    label = html.escape(describe_class(class_session))
    return EmailMessage(
        to=admin_email,
        subject="New booking",
        html=f"<p>{who} booked {label}.</p>",
    )


def build_cancellation_confirmation(
    *,
    email: str,
    name: str | None,
    class_session: models.ClassSession,
    credit_refunded: bool,
) -> EmailMessage:
    label = html.escape(describe_class(class_session))
    refund_note = (
        "Your class credit has been returned to your account."
        if credit_refunded
        else "Because this cancellation is inside the cancellation window, the credit was not returned."
    )
    return EmailMessage(
        to=email,
        subject="Your booking was cancelled",
        html=f"{_greeting(name)}<p>Your booking for {label} was cancelled. {refund_note}</p>",
    )


def build_waitlist_spot_available(
    *, email: str, name: str | None, class_session: models.ClassSession
) -> EmailMessage:
    label = html.escape(describe_class(class_session))
    return EmailMessage(
        to=email,
        subject="A spot opened up",
        html=f"{_greeting(name)}<p>A spot just opened in {label}. Book now before it's gone!</p>",
    )


def build_waitlist_promotion(
    *, email: str, name: str | None, class_session: models.ClassSession
) -> EmailMessage:
    label = html.escape(describe_class(class_session))
    return EmailMessage(
        to=email,
        subject="You're off the waitlist",
        html=f"{_greeting(name)}<p>Good news! You've been moved off the waitlist and booked into {label}.</p>",
    )


def build_class_cancelled(
    *, email: str, name: str | None, class_session: models.ClassSession
) -> EmailMessage:
    label = html.escape(describe_class(class_session))
    return EmailMessage(
        to=email,
        subject="Class cancelled",
        html=(
            f"{_greeting(name)}<p>Unfortunately {label} has been cancelled. "
            "Any credit you used has been returned to your account.</p>"
        ),
    )


def build_class_reminder(*, email: str, name: str | None, last_class_date: date) -> EmailMessage:
    days_since = (date.today() - last_class_date).days
    formatted = last_class_date.strftime("%B %d, %Y").replace(" 0", " ")
    return EmailMessage(
        to=email,
        subject="We miss you at Swift Fit! Time to return to your practice",
        html=(
            f"{_greeting(name or 'Valued Student')}<p>Your last class was on {formatted}, "
            f"{days_since} days ago. We'd love to see you back on the mat.</p>"
        ),
    )


def build_pre_class_reminder(
    *, email: str, name: str | None, class_session: models.ClassSession, hours_until: int
) -> EmailMessage:
    class_name = class_session.class_type.name if class_session.class_type else "Class"
    label = html.escape(describe_class(class_session))
    instructor = html.escape(
        class_session.instructor.name if class_session.instructor else "your instructor"
    )
    return EmailMessage(
        to=email,
        subject=f"Reminder: {class_name} in {hours_until} hours",
        html=(
            f"{_greeting(name)}<p>This is a reminder that you are booked for {label} "
            f"with {instructor}. Please arrive a few minutes early.</p>"
        ),
    )


def build_pre_class_summary(*, checked: int, result: dict) -> EmailMessage | None:
    admin_email = get_settings().admin_email
    if not admin_email:
        return None
    errors = "".join(f"<li>{html.escape(error)}</li>" for error in result["errors"])
    return EmailMessage(
        to=admin_email,
        subject=f"Pre-class reminders: {result['sent']} sent, {result['failed']} failed",
        html=(
            f"<p>Bookings checked: {checked}</p>"
            f"<p>Reminders sent: {result['sent']}</p>"
            f"<p>Skipped (opted out): {result['skipped']}</p>"
            f"<p>Failed: {result['failed']}</p>"
            + (f"<ul>{errors}</ul>" if errors else "")
        ),
    )


def build_verification_email(*, email: str, name: str | None, verify_url: str) -> EmailMessage:
    link = html.escape(verify_url, quote=True)
    return EmailMessage(
        to=email,
        subject="Verify your email address",
        html=(
            f"{_greeting(name)}<p>Please confirm your email address by clicking the link below. "
            f"The link expires in 24 hours.</p><p><a href=\"{link}\">Verify email</a></p>"
        ),
    )


def send_emails(messages: list[EmailMessage | None]) -> int:
    """Deliver messages through Resend; failures are logged and skipped."""

    messages = [message for message in messages if message is not None]
    if not messages:
        return 0

    settings = get_settings()
    if not settings.resend_api_key:
        logger.warning("Resend API key is not configured; skipping %d emails", len(messages))
        return 0

    sent = 0
    headers = {"Authorization": f"Bearer {settings.resend_api_key}"}
    with httpx.Client(timeout=10, headers=headers) as client:
        for message in messages:
            try:
                response = client.post(
                    RESEND_API_URL,
                    json={
                        "from": settings.email_from,
                        "to": [message.to],
                        "subject": message.subject,
                        "html": message.html,
                    },
                )
                response.raise_for_status()
            except httpx.HTTPError:
                logger.exception(
                    "Failed to send email",
                    extra={"to": message.to, "subject": message.subject},
                )
                continue
            sent += 1
    return sent


def send_email(message: EmailMessage) -> bool:
    return send_emails([message]) == 1


__all__ = [
    "EmailMessage",
    "describe_class",
    "build_booking_confirmation",
    "build_admin_booking_notice",
    "build_cancellation_confirmation",
    "build_waitlist_spot_available",
    "build_waitlist_promotion",
    "build_class_cancelled",
    "build_class_reminder",
    "build_pre_class_reminder",
    "build_pre_class_summary",
    "build_verification_email",
    "send_emails",
    "send_email",
]
