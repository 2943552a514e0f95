from . import (
    auth,
    classes,
    bookings,
    attendance,
    waitlist,
    credits,
    purchases,
    class_reminders,
    cron,
    payment_methods,
    upload,
    catalog,
    studio_info,
    misc,
    reports,
)

__all__ = [
    "auth",
    "classes",
    "bookings",
    "attendance",
    "waitlist",
    "credits",
    "purchases",
    "class_reminders",
    "cron",
    "payment_methods",
    "upload",
    "catalog",
    "studio_info",
    "misc",
    "reports",
]
