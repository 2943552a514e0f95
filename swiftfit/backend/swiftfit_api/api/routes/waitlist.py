from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from ...api import deps
from ...core.errors import ValidationError
from ...db.session import get_db
from ...db import models, schemas
from ...services import schedule_service, waitlist_service

router = APIRouter(prefix="/waitlist", tags=["waitlist"])


@router.post("", response_model=schemas.WaitlistEntry, status_code=status.HTTP_201_CREATED)
def join_waitlist(
    payload: schemas.WaitlistJoin,
    db: Session = Depends(get_db),
    current: models.UserProfile = Depends(deps.get_current_profile),
):
    if not payload.class_id:
        raise ValidationError("classId is required", "MISSING_CLASS_ID")
    student_profile_id = payload.student_profile_id or current.id
    deps.ensure_self_or_staff(current, student_profile_id)
    return waitlist_service.join(db, payload.class_id, student_profile_id)


@router.get("", response_model=list[schemas.WaitlistEntry])
def list_waitlist(
    class_id: int | None = Query(default=None, alias="classId"),
    db: Session = Depends(get_db),
    current: models.UserProfile = Depends(deps.get_current_profile),
):
    if not class_id:
        raise ValidationError("classId is required", "MISSING_CLASS_ID")
    schedule_service.get_class(db, class_id)
    entries = waitlist_service.list_entries(db, class_id)
    if not deps.is_staff(current):
        entries = [entry for entry in entries if entry.student_profile_id == current.id]
    return entries


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def leave_waitlist(
    entry_id: int,
    db: Session = Depends(get_db),
    current: models.UserProfile = Depends(deps.get_current_profile),
):
    entry = waitlist_service.get_entry(db, entry_id)
    deps.ensure_self_or_staff(current, entry.student_profile_id)
    waitlist_service.leave(db, entry)


@router.post(
    "/promote",
    response_model=schemas.PromoteResponse,
    response_model_exclude_none=True,
)
def promote_waitlist(
    payload: schemas.PromoteRequest,
    db: Session = Depends(get_db),
    _: models.UserProfile = Depends(deps.require_roles("admin", "instructor")),
):
    if not payload.class_id:
        raise ValidationError("classId is required", "MISSING_CLASS_ID")
    outcome = waitlist_service.promote(db, payload.class_id, auto_promote=payload.auto_promote)
    if outcome.spots_available <= 0:
        return schemas.PromoteResponse(message="No spots available", promoted=0, spots_available=0)
    if outcome.waitlist_size == 0:
        return schemas.PromoteResponse(message="No one on waitlist", promoted=0)
    return schemas.PromoteResponse(
        message=f"Promoted {outcome.promoted_count} from waitlist",
        promoted=outcome.promoted_count,
        spots_remaining=outcome.spots_remaining,
        results=outcome.results,
    )
