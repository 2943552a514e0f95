from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from ...api import deps
from ...core.errors import NotFoundError
from ...db.session import get_db
from ...db import models, schemas
from ...services import payment_service

router = APIRouter(prefix="/purchases", tags=["purchases"])


@router.get("", response_model=list[schemas.StudentPurchase])
def list_purchases(
    student_profile_id: int | None = Query(default=None, alias="studentProfileId"),
    db: Session = Depends(get_db),
    current: models.UserProfile = Depends(deps.get_current_profile),
):
    if not deps.is_staff(current) or student_profile_id is None:
        student_profile_id = current.id
    return (
        db.query(models.StudentPurchase)
        .filter(models.StudentPurchase.student_profile_id == student_profile_id)
        .order_by(models.StudentPurchase.purchased_at.desc(), models.StudentPurchase.id.desc())
        .all()
    )


@router.post(
    "",
    response_model=schemas.PurchaseResult,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(deps.rate_limit("PAYMENT_CREATE"))],
)
def create_purchase(
    payload: schemas.PurchaseCreate,
    db: Session = Depends(get_db),
    current: models.UserProfile = Depends(deps.get_current_profile),
):
    student = current
    if payload.student_profile_id and payload.student_profile_id != current.id:
        deps.ensure_self_or_staff(current, payload.student_profile_id)
        student = db.get(models.UserProfile, payload.student_profile_id)
        if student is None:
            raise NotFoundError("Student profile not found", "STUDENT_NOT_FOUND")
    payment, purchase = payment_service.purchase(
        db,
        student,
        package_id=payload.package_id,
        membership_id=payload.membership_id,
        source_id=payload.source_id,
        auto_renew=payload.auto_renew,
    )
    return schemas.PurchaseResult(payment=payment, purchase=purchase)
