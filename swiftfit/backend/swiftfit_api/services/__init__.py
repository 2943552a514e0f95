from . import (
    booking_service,
    credit_service,
    notification_service,
    payment_method_service,
    payment_service,
    reminder_service,
    schedule_service,
    verification_service,
    waitlist_service,
)
__all__ = [
    "booking_service",
    "credit_service",
    "notification_service",
    "payment_method_service",
    "payment_service",
    "reminder_service",
    "schedule_service",
    "verification_service",
    "waitlist_service",
]
