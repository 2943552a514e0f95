"""Endpoints for the external cron runner.

Every route here requires ``Authorization: Bearer <CRON_SECRET>`` and answers
on both GET and POST so simple schedulers can hit them.
"""

import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from ...api import deps
from ...core.timeutils import utc_now
from ...db.session import get_db
from ...db import schemas
from ...services import credit_service, reminder_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/cron",
    tags=["cron"],
    dependencies=[Depends(deps.verify_cron_secret)],
)


def _expire_result(details: list[dict]) -> schemas.ExpireCreditsResult:
    return schemas.ExpireCreditsResult(
        success=True,
        message=f"Deactivated {len(details)} expired purchases",
        deactivated_count=len(details),
        details=details,
        timestamp=utc_now(),
    )


@router.api_route(
    "/expire-credits",
    methods=["GET", "POST"],
    response_model=schemas.ExpireCreditsResult,
)
def expire_credits(db: Session = Depends(get_db)):
    return _expire_result(credit_service.expire_credits(db))


@router.api_route(
    "/send-class-reminders",
    methods=["GET", "POST"],
    response_model=schemas.ReminderSweepResult,
)
def send_class_reminders(db: Session = Depends(get_db)):
    return reminder_service.send_due_reminders(db)


@router.api_route(
    "/send-pre-class-reminders",
    methods=["GET", "POST"],
    response_model=schemas.PreClassReminderResult,
)
def send_pre_class_reminders(db: Session = Depends(get_db)):
    result = reminder_service.send_pre_class_reminders(db)
    return schemas.PreClassReminderResult(
        **result,
        timestamp=utc_now(),
        message=(
            f"Sent {result['sent']} pre-class reminders, "
            f"{result['skipped']} skipped, {result['failed']} failed"
        ),
    )


@router.api_route("/daily-tasks", methods=["GET", "POST"])
def daily_tasks(db: Session = Depends(get_db)):
    reminders = reminder_service.send_due_reminders(db)
    expired = _expire_result(credit_service.expire_credits(db))
    renewals = credit_service.process_renewals(db)
    logger.info(
        "Daily tasks finished",
        extra={
            "reminders_sent": reminders["sent"],
            "purchases_expired": expired.deactivated_count,
            "renewals": renewals["total_processed"],
        },
    )
    return {
        "success": True,
        "timestamp": utc_now(),
        "classReminders": schemas.ReminderSweepResult.model_validate(reminders).model_dump(by_alias=True),
        "expiredCredits": expired.model_dump(by_alias=True),
        "renewals": schemas.RenewalSummary.model_validate(renewals).model_dump(by_alias=True),
    }
