from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from ...api import deps
from ...core.errors import ValidationError
from ...db.session import get_db
from ...db import models, schemas
from ...services import booking_service

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.get("", response_model=list[schemas.Booking])
def list_bookings(
    class_id: int | None = Query(default=None, alias="classId"),
    student_profile_id: int | None = Query(default=None, alias="studentProfileId"),
    status: models.BookingStatus | None = None,
    db: Session = Depends(get_db),
    current: models.UserProfile = Depends(deps.get_current_profile),
):
    if not deps.is_staff(current):
        student_profile_id = current.id
    return booking_service.list_bookings(
        db,
        class_id=class_id,
        student_profile_id=student_profile_id,
        status=status,
    )


@router.post(
    "",
    response_model=schemas.Booking,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(deps.rate_limit("BOOKING_CREATE"))],
)
def create_booking(
    payload: schemas.BookingCreate,
    db: Session = Depends(get_db),
    current: models.UserProfile = Depends(deps.get_current_profile),
):
    if not payload.class_id:
        raise ValidationError("classId is required", "MISSING_CLASS_ID")
    student_profile_id = payload.student_profile_id or current.id
    deps.ensure_self_or_staff(current, student_profile_id)
    return booking_service.create_booking(db, payload.class_id, student_profile_id)


@router.get("/{booking_id}", response_model=schemas.Booking)
def get_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current: models.UserProfile = Depends(deps.get_current_profile),
):
    booking = booking_service.get_booking(db, booking_id)
    deps.ensure_self_or_staff(current, booking.student_profile_id)
    return booking


@router.post(
    "/{booking_id}/cancel",
    response_model=schemas.BookingCancelResponse,
    dependencies=[Depends(deps.rate_limit("BOOKING_CANCEL"))],
)
def cancel_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current: models.UserProfile = Depends(deps.get_current_profile),
):
    booking = booking_service.get_booking(db, booking_id)
    deps.ensure_self_or_staff(current, booking.student_profile_id)
    result = booking_service.cancel_booking(db, booking)
    return schemas.BookingCancelResponse(
        message="Booking cancelled successfully",
        booking=result.booking,
        cancellation_details={
            "type": result.cancellation_type.value,
            "hours_before_class": result.hours_before_class,
            "credit_refunded": result.credit_refunded,
            "credits_refunded": result.credits_refunded,
            "penalty_applied": result.penalty_applied,
        },
    )


@router.put("/{booking_id}/attendance", response_model=schemas.Booking)
def update_attendance(
    booking_id: int,
    payload: schemas.AttendanceUpdate,
    db: Session = Depends(get_db),
    _: models.UserProfile = Depends(deps.require_roles("admin", "instructor")),
):
    return booking_service.mark_attendance(db, booking_id, payload.status)
