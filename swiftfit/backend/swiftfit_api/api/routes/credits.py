from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from ...api import deps
from ...db.session import get_db
from ...db import models, schemas
from ...services import credit_service

router = APIRouter(tags=["credits"])


@router.get("/students/{student_profile_id}/credits", response_model=schemas.CreditsSummary)
def student_credits(
    student_profile_id: int,
    db: Session = Depends(get_db),
    current: models.UserProfile = Depends(deps.get_current_profile),
):
    deps.ensure_self_or_staff(current, student_profile_id)
    summary = credit_service.get_credits_summary(db, student_profile_id)
    return schemas.CreditsSummary.model_validate(summary)


@router.post(
    "/memberships/{purchase_id}/toggle-renewal",
    response_model=schemas.ToggleRenewalResponse,
)
def toggle_renewal(
    purchase_id: int,
    db: Session = Depends(get_db),
    current: models.UserProfile = Depends(deps.get_current_profile),
):
    purchase = credit_service.get_purchase(db, purchase_id)
    deps.ensure_self_or_staff(current, purchase.student_profile_id)
    purchase = credit_service.toggle_auto_renew(db, purchase)
    state = "enabled" if purchase.auto_renew else "disabled"
    return schemas.ToggleRenewalResponse(message=f"Auto-renewal {state}", purchase=purchase)


@router.post("/memberships/process-renewals", response_model=schemas.RenewalSummary)
def process_renewals(
    db: Session = Depends(get_db),
    _: models.UserProfile = Depends(deps.get_current_profile),
):
    return credit_service.process_renewals(db)


@router.post("/admin/add-credits", response_model=schemas.PurchaseResult, status_code=201)
def add_credits(
    payload: schemas.AddCreditsRequest,
    db: Session = Depends(get_db),
    admin: models.UserProfile = Depends(deps.require_roles("admin")),
):
    purchase, payment = credit_service.add_credits(
        db,
        student_profile_id=payload.student_profile_id,
        package_id=payload.package_id,
        credits=payload.credits,
        expiration_days=payload.expiration_days,
        notes=payload.notes,
        actor_id=admin.id,
    )
    return schemas.PurchaseResult(payment=payment, purchase=purchase)
