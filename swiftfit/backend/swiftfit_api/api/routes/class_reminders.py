from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from ...api import deps
from ...db.session import get_db
from ...db import models, schemas
from ...services import reminder_service

router = APIRouter(prefix="/class-reminders", tags=["class-reminders"])

STAFF = ("admin", "instructor")


@router.get("/due", response_model=schemas.DueReminders)
def due_reminders(
    db: Session = Depends(get_db),
    _: models.UserProfile = Depends(deps.require_roles(*STAFF)),
):
    reminders = reminder_service.due_reminders(db)
    return schemas.DueReminders(due_reminders=reminders, count=len(reminders))


@router.post(
    "/schedule",
    response_model=schemas.ClassReminder,
    status_code=status.HTTP_201_CREATED,
)
def schedule_reminder(
    payload: schemas.ReminderSchedule,
    db: Session = Depends(get_db),
    _: models.UserProfile = Depends(deps.require_roles(*STAFF)),
):
    return reminder_service.schedule_reminder(
        db,
        last_class_date=payload.last_class_date,
        student_profile_id=payload.student_profile_id,
        email=payload.email,
    )


@router.post("/mark-sent", response_model=schemas.ClassReminder)
def mark_sent(
    payload: schemas.ReminderMarkSent,
    db: Session = Depends(get_db),
    _: models.UserProfile = Depends(deps.require_roles(*STAFF)),
):
    return reminder_service.mark_sent(db, payload.reminder_id)
