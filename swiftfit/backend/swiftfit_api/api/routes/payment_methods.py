from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from ...api import deps
from ...core.errors import ForbiddenError
from ...db.session import get_db
from ...db import models, schemas
from ...services import payment_method_service

router = APIRouter(prefix="/payment-methods", tags=["payment-methods"])


def _ensure_owner(current: models.UserProfile, student_profile_id: object) -> None:
    if deps.is_staff(current) or student_profile_id in (None, ""):
        return
    if str(student_profile_id).strip() != str(current.id):
        raise ForbiddenError("You can only manage your own payment methods", "FORBIDDEN")


@router.get("", response_model=schemas.PaymentMethod | list[schemas.PaymentMethod])
def get_payment_methods(
    id: str | None = None,
    limit: int = 10,
    offset: int = 0,
    student_profile_id: int | None = Query(default=None, alias="studentProfileId"),
    is_default: bool | None = Query(default=None, alias="isDefault"),
    db: Session = Depends(get_db),
    current: models.UserProfile = Depends(deps.get_current_profile),
):
    if id is not None:
        payment_method = payment_method_service.get_payment_method(db, id)
        _ensure_owner(current, payment_method.student_profile_id)
        return payment_method
    if not deps.is_staff(current):
        student_profile_id = current.id
    return payment_method_service.list_payment_methods(
        db,
        limit=limit,
        offset=offset,
        student_profile_id=student_profile_id,
        is_default=is_default,
    )


@router.post("", response_model=schemas.PaymentMethod, status_code=status.HTTP_201_CREATED)
def create_payment_method(
    payload: schemas.PaymentMethodCreate,
    db: Session = Depends(get_db),
    current: models.UserProfile = Depends(deps.get_current_profile),
):
    _ensure_owner(current, payload.student_profile_id)
    return payment_method_service.create_payment_method(
        db,
        student_profile_id=payload.student_profile_id,
        square_card_id=payload.square_card_id,
        card_brand=payload.card_brand,
        last_4=payload.last_4,
        exp_month=payload.exp_month,
        exp_year=payload.exp_year,
        is_default=payload.is_default,
    )


@router.delete("/{payment_method_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_payment_method(
    payment_method_id: str,
    db: Session = Depends(get_db),
    current: models.UserProfile = Depends(deps.get_current_profile),
):
    payment_method = payment_method_service.get_payment_method(db, payment_method_id)
    _ensure_owner(current, payment_method.student_profile_id)
    payment_method_service.delete_payment_method(db, payment_method)
