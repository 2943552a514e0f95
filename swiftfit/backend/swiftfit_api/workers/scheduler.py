import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from ..db.session import SessionLocal
from ..services import credit_service, reminder_service

logger = logging.getLogger(__name__)


def expire_credits() -> None:
    with SessionLocal() as db:
        expired = credit_service.expire_credits(db)
    if expired:
        logger.info("Expiry job deactivated purchases", extra={"count": len(expired)})


def process_renewals() -> None:
    with SessionLocal() as db:
        summary = credit_service.process_renewals(db)
    if summary["failed_renewals"]:
        logger.warning(
            "Renewal job had failures",
            extra={"failed": summary["failed_renewals"], "total": summary["total_processed"]},
        )


def send_class_reminders() -> None:
    with SessionLocal() as db:
        reminder_service.send_due_reminders(db)


def send_pre_class_reminders() -> None:
    with SessionLocal() as db:
        reminder_service.send_pre_class_reminders(db)


def get_scheduler() -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(expire_credits, "interval", hours=1, id="expire_credits")
    scheduler.add_job(process_renewals, "interval", hours=6, id="process_renewals")
    scheduler.add_job(send_class_reminders, "cron", hour=9, minute=0, id="send_class_reminders")
    scheduler.add_job(send_pre_class_reminders, "interval", hours=1, id="send_pre_class_reminders")
    return scheduler
