from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from ...api import deps
from ...db.session import get_db
from ...db import models, schemas
from ...services import booking_service

router = APIRouter(prefix="/attendance", tags=["attendance"])


@router.post("", response_model=schemas.BulkAttendanceResponse)
def mark_attendance(
    payload: schemas.BulkAttendance,
    db: Session = Depends(get_db),
    _: models.UserProfile = Depends(deps.require_roles("admin", "instructor")),
):
    return booking_service.bulk_mark_attendance(
        db, payload.class_id, payload.attendees, payload.no_shows
    )
