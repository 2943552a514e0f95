from datetime import date
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from ...api import deps
from ...db.session import get_db
from ...db import models, schemas
from ...services import booking_service, schedule_service, waitlist_service

router = APIRouter(prefix="/classes", tags=["classes"])

STAFF = ("admin", "instructor")


@router.get("", response_model=list[schemas.ClassSession])
def list_classes(
    from_date: date | None = Query(default=None, alias="fromDate"),
    to_date: date | None = Query(default=None, alias="toDate"),
    status: models.ClassStatus | None = None,
    class_type_id: int | None = Query(default=None, alias="classTypeId"),
    db: Session = Depends(get_db),
):
    classes = schedule_service.list_classes(
        db,
        from_date=from_date,
        to_date=to_date,
        status=status,
        class_type_id=class_type_id,
    )
    return schedule_service.annotate_classes(db, classes)


@router.get("/{class_id}", response_model=schemas.ClassSession)
def get_class(class_id: int, db: Session = Depends(get_db)):
    class_session = schedule_service.get_class(db, class_id)
    return schedule_service.annotate_classes(db, [class_session])[0]


@router.post("", response_model=schemas.ClassSession, status_code=201)
def create_class(
    payload: schemas.ClassSessionCreate,
    db: Session = Depends(get_db),
    _: models.UserProfile = Depends(deps.require_roles("admin")),
):
    class_session = schedule_service.create_class(db, **payload.model_dump())
    return schedule_service.annotate_classes(db, [class_session])[0]


@router.patch("/{class_id}", response_model=schemas.ClassSession)
def update_class(
    class_id: int,
    payload: schemas.ClassSessionUpdate,
    db: Session = Depends(get_db),
    _: models.UserProfile = Depends(deps.require_roles("admin")),
):
    class_session = schedule_service.get_class(db, class_id)
    class_session = schedule_service.update_class(
        db, class_session, payload.model_dump(exclude_unset=True)
    )
    return schedule_service.annotate_classes(db, [class_session])[0]


@router.post("/{class_id}/cancel", response_model=schemas.ClassSession)
def cancel_class(
    class_id: int,
    db: Session = Depends(get_db),
    admin: models.UserProfile = Depends(deps.require_roles("admin")),
):
    class_session = schedule_service.get_class(db, class_id)
    class_session = schedule_service.cancel_class(db, class_session, actor_id=admin.id)
    return schedule_service.annotate_classes(db, [class_session])[0]


@router.get("/{class_id}/registrations", response_model=schemas.ClassRegistrations)
def class_registrations(
    class_id: int,
    db: Session = Depends(get_db),
    _: models.UserProfile = Depends(deps.require_roles(*STAFF)),
):
    class_session = schedule_service.get_class(db, class_id)
    schedule_service.annotate_classes(db, [class_session])
    return schemas.ClassRegistrations(
        class_session=class_session,
        bookings=booking_service.list_bookings(db, class_id=class_id),
        waitlist=waitlist_service.list_entries(db, class_id),
    )
