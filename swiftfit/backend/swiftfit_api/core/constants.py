"""Common application-wide constants."""

from datetime import timedelta

# Membership terms are billed and extended in fixed 30 day steps
MEMBERSHIP_TERM = timedelta(days=30)

# Renewal sweep picks up memberships expiring within this window
RENEWAL_LOOKAHEAD = timedelta(hours=24)

# A "we miss you" reminder goes out this long after the last attended class
CLASS_REMINDER_DELAY = timedelta(days=30)
REMINDER_BATCH_SIZE = 50

# Pre-class reminders: classes up to two days out are checked, nothing goes out inside the last hour
PRE_CLASS_LOOKAHEAD = timedelta(hours=48)
PRE_CLASS_MIN_LEAD = timedelta(hours=1)
PRE_CLASS_BATCH_SIZE = 100

EMAIL_VERIFICATION_TTL = timedelta(hours=24)

UPLOAD_MAX_BYTES = 5 * 1024 * 1024
UPLOAD_ALLOWED_TYPES = frozenset(
    {"image/jpeg", "image/jpg", "image/png", "image/webp", "image/gif"}
)
UPLOAD_DEFAULT_FOLDER = "uploads"

PAYMENT_METHODS_MAX_LIMIT = 100

SYSTEM_ACTOR = "system"
CLASS_CANCELLED_ACTION = "class_cancelled_notification"


__all__ = [
    "MEMBERSHIP_TERM",
    "RENEWAL_LOOKAHEAD",
    "CLASS_REMINDER_DELAY",
    "REMINDER_BATCH_SIZE",
    "PRE_CLASS_LOOKAHEAD",
    "PRE_CLASS_MIN_LEAD",
    "PRE_CLASS_BATCH_SIZE",
    "EMAIL_VERIFICATION_TTL",
    "UPLOAD_MAX_BYTES",
    "UPLOAD_ALLOWED_TYPES",
    "UPLOAD_DEFAULT_FOLDER",
    "PAYMENT_METHODS_MAX_LIMIT",
    "SYSTEM_ACTOR",
    "CLASS_CANCELLED_ACTION",
]
