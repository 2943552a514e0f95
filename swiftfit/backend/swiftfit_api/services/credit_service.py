from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, selectinload

from ..config import get_settings
from ..core.constants import MEMBERSHIP_TERM, RENEWAL_LOOKAHEAD
from ..core.errors import (
    InsufficientCredits,
    InvalidPurchaseType,
    NoActivePurchases,
    NotFoundError,
    PurchaseNotFound,
    ValidationError,
)
from ..core.timeutils import as_utc, utc_now
from ..db import models

logger = logging.getLogger(__name__)

_DEFAULT_MANUAL_VALIDITY_DAYS = 365


class RenewalError(Exception):
    pass


@dataclass(slots=True)
class CreditsSummary:
    student_profile_id: int
    packages: list[models.StudentPurchase] = field(default_factory=list)
    memberships: list[models.StudentPurchase] = field(default_factory=list)

    @property
    def total_credits(self) -> int:
        return sum(max(p.credits_remaining or 0, 0) for p in self.packages)

    @property
    def has_unlimited_access(self) -> bool:
        return any(p.is_unlimited for p in self.memberships)


def _active_purchases_stmt(student_profile_id: int, now: datetime):
    return (
        select(models.StudentPurchase)
        .where(
            models.StudentPurchase.student_profile_id == student_profile_id,
            models.StudentPurchase.is_active.is_(True),
            or_(
                models.StudentPurchase.expires_at.is_(None),
                models.StudentPurchase.expires_at > now,
            ),
        )
        .order_by(models.StudentPurchase.id)
    )


def get_active_purchases(db: Session, student_profile_id: int) -> list[models.StudentPurchase]:
    stmt = _active_purchases_stmt(student_profile_id, utc_now())
    return list(db.execute(stmt).scalars().all())


def get_credits_summary(db: Session, student_profile_id: int) -> CreditsSummary:
    purchases = get_active_purchases(db, student_profile_id)
    if not purchases:
        raise NoActivePurchases()
    summary = CreditsSummary(student_profile_id=student_profile_id)
    for purchase in purchases:
        if purchase.purchase_type == models.PurchaseType.membership:
            summary.memberships.append(purchase)
        else:
            summary.packages.append(purchase)
    return summary


def _purchase_sort_key(purchase: models.StudentPurchase) -> tuple:
    expires_at = as_utc(purchase.expires_at)
    return (
        0 if purchase.is_unlimited else 1,
        expires_at is None,
        expires_at or datetime.max.replace(tzinfo=timezone.utc),
        purchase.id,
    )


def select_purchase_for_booking(
    db: Session, student_profile_id: int
) -> models.StudentPurchase | None:
    """Pick the purchase a new booking draws from.

    Unlimited memberships win since they cost nothing; otherwise the credit that
    expires soonest goes first. Candidate rows are locked until the caller commits.
    """

    stmt = _active_purchases_stmt(student_profile_id, utc_now()).with_for_update()
    candidates = [
        purchase
        for purchase in db.execute(stmt).scalars().all()
        if purchase.is_unlimited or (purchase.credits_remaining or 0) > 0
    ]
    if not candidates:
        return None
    candidates.sort(key=_purchase_sort_key)
    return candidates[0]


def consume_credit(purchase: models.StudentPurchase) -> int:
    """Decrement the balance by one class and return the credits used."""
    if purchase.is_unlimited:
        return 0
    if (purchase.credits_remaining or 0) <= 0:
        raise InsufficientCredits()
    purchase.credits_remaining -= 1
    return 1


def refund_credit(db: Session, booking: models.Booking) -> int:
    if not booking.credits_used or not booking.purchase_id:
        return 0
    purchase = db.get(models.StudentPurchase, booking.purchase_id)
    if purchase is None or purchase.is_unlimited:
        return 0
    purchase.credits_remaining = (purchase.credits_remaining or 0) + booking.credits_used
    if purchase.credits_total is not None and purchase.credits_remaining > purchase.credits_total:
        purchase.credits_total = purchase.credits_remaining
    refunded = booking.credits_used
    booking.credits_used = 0
    return refunded


def expire_credits(db: Session) -> list[dict]:
    now = utc_now()
    expired = (
        db.execute(
            select(models.StudentPurchase)
            .where(
                models.StudentPurchase.is_active.is_(True),
                models.StudentPurchase.expires_at.is_not(None),
                models.StudentPurchase.expires_at < now,
                models.StudentPurchase.credits_remaining > 0,
            )
            .order_by(models.StudentPurchase.id)
            .with_for_update()
        )
        .scalars()
        .all()
    )
    details = []
    try:
        for purchase in expired:
            purchase.is_active = False
            details.append(
                {
                    "purchase_id": purchase.id,
                    "student_profile_id": purchase.student_profile_id,
                    "credits_expired": purchase.credits_remaining,
                    "expires_at": as_utc(purchase.expires_at),
                }
            )
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Expired purchases swept", extra={"deactivated": len(details)})
    return details


def _renew_membership(db: Session, purchase: models.StudentPurchase, now: datetime) -> dict:
    if not purchase.membership_id:
        raise RenewalError("Purchase has no membership attached")
    membership = db.get(models.Membership, purchase.membership_id)
    if membership is None:
        raise RenewalError("Membership not found")

    settings = get_settings()
    timestamp = int(now.timestamp() * 1000)
    payment = models.Payment(
        student_profile_id=purchase.student_profile_id,
        amount=membership.price_monthly,
        currency=settings.payment_currency.upper(),
        payment_method=models.PaymentMethodType.square,
        external_payment_id=f"auto_renewal_{timestamp}_{purchase.id}",
        status=models.PaymentStatus.completed,
        payment_date=now,
        notes=f"Automatic renewal of {membership.name}",
    )
    db.add(payment)
    db.flush()

    new_expiry = as_utc(purchase.expires_at) + MEMBERSHIP_TERM
    purchase.expires_at = new_expiry
    purchase.next_billing_date = new_expiry + MEMBERSHIP_TERM
    purchase.payment_id = payment.id
    if membership.credits_per_month is not None and not membership.is_unlimited:
        purchase.credits_remaining = membership.credits_per_month
        purchase.credits_total = membership.credits_per_month
    return {
        "purchase_id": purchase.id,
        "student_profile_id": purchase.student_profile_id,
        "membership_name": membership.name,
        "amount": float(membership.price_monthly),
        "status": "success",
    }


def process_renewals(db: Session) -> dict:
    """Renew auto-renewing memberships that lapse within the next day.

    No charge goes through the gateway here; the renewal payment is recorded as
    completed. Each purchase renews inside its own savepoint, so a failing one
    (including a database error) is rolled back, reported in ``renewals``, and
    does not stop the rest of the batch.
    """

    now = utc_now()
    due = (
        db.execute(
            select(models.StudentPurchase)
            .options(selectinload(models.StudentPurchase.membership))
            .where(
                models.StudentPurchase.purchase_type == models.PurchaseType.membership,
                models.StudentPurchase.auto_renew.is_(True),
                models.StudentPurchase.is_active.is_(True),
                models.StudentPurchase.expires_at >= now,
                models.StudentPurchase.expires_at <= now + RENEWAL_LOOKAHEAD,
            )
            .order_by(models.StudentPurchase.id)
            .with_for_update()
        )
        .scalars()
        .all()
    )
    renewals = []
    try:
        for purchase in due:
            purchase_id = purchase.id
            student_profile_id = purchase.student_profile_id
            membership_name = purchase.membership.name if purchase.membership else None
            try:
                with db.begin_nested():
                    renewals.append(_renew_membership(db, purchase, now))
            except Exception as exc:
                logger.warning(
                    "Membership renewal failed",
                    exc_info=not isinstance(exc, RenewalError),
                    extra={"purchase_id": purchase_id, "error": str(exc)},
                )
                renewals.append(
                    {
                        "purchase_id": purchase_id,
                        "student_profile_id": student_profile_id,
                        "membership_name": membership_name,
                        "amount": None,
                        "status": "failed",
                        "error": str(exc),
                    }
                )
        db.commit()
    except Exception:
        db.rollback()
        raise
    successful = sum(1 for item in renewals if item["status"] == "success")
    logger.info(
        "Membership renewals processed",
        extra={"total": len(renewals), "successful": successful},
    )
    return {
        "total_processed": len(renewals),
        "successful_renewals": successful,
        "failed_renewals": len(renewals) - successful,
        "renewals": renewals,
    }


def get_purchase(db: Session, purchase_id: int) -> models.StudentPurchase:
    purchase = db.get(models.StudentPurchase, purchase_id)
    if purchase is None:
        raise PurchaseNotFound(purchase_id)
    return purchase


def toggle_auto_renew(db: Session, purchase: models.StudentPurchase) -> models.StudentPurchase:
    if purchase.purchase_type != models.PurchaseType.membership:
        raise InvalidPurchaseType()
    purchase.auto_renew = not purchase.auto_renew
    purchase.next_billing_date = utc_now() + MEMBERSHIP_TERM if purchase.auto_renew else None
    db.commit()
    db.refresh(purchase)
    return purchase


def create_package_purchase(
    db: Session,
    *,
    student_profile_id: int,
    package: models.Package,
    payment: models.Payment | None,
    credits: int | None = None,
    expiration_days: int | None = None,
    notes: str | None = None,
) -> models.StudentPurchase:
    now = utc_now()
    total = credits if credits is not None else package.credits
    days = expiration_days or package.expiration_days
    purchase = models.StudentPurchase(
        student_profile_id=student_profile_id,
        purchase_type=models.PurchaseType.package,
        package_id=package.id,
        credits_remaining=total,
        credits_total=total,
        purchased_at=now,
        expires_at=now + timedelta(days=days) if days else None,
        is_active=True,
        payment_id=payment.id if payment else None,
        notes=notes,
    )
    db.add(purchase)
    return purchase


def create_membership_purchase(
    db: Session,
    *,
    student_profile_id: int,
    membership: models.Membership,
    payment: models.Payment | None,
    auto_renew: bool = False,
) -> models.StudentPurchase:
    now = utc_now()
    if membership.is_unlimited or membership.credits_per_month is None:
        credits = models.UNLIMITED_CREDITS
    else:
        credits = membership.credits_per_month
    expires_at = now + MEMBERSHIP_TERM
    purchase = models.StudentPurchase(
        student_profile_id=student_profile_id,
        purchase_type=models.PurchaseType.membership,
        membership_id=membership.id,
        credits_remaining=credits,
        credits_total=credits,
        purchased_at=now,
        expires_at=expires_at,
        is_active=True,
        auto_renew=auto_renew,
        next_billing_date=expires_at if auto_renew else None,
        payment_id=payment.id if payment else None,
    )
    db.add(purchase)
    return purchase


def add_credits(
    db: Session,
    *,
    student_profile_id: int,
    package_id: int | None = None,
    credits: int | None = None,
    expiration_days: int | None = None,
    notes: str | None = None,
    actor_id: int | None = None,
) -> tuple[models.StudentPurchase, models.Payment]:
    """Grant credits by hand, recorded as a zero-amount admin payment."""

    student = db.get(models.UserProfile, student_profile_id)
    if student is None:
        raise NotFoundError("Student profile not found", "STUDENT_NOT_FOUND")
    package = None
    if package_id is not None:
        package = db.get(models.Package, package_id)
        if package is None:
            raise NotFoundError("Package not found", "PACKAGE_NOT_FOUND")
    elif credits is None:
        raise ValidationError("Either packageId or credits is required", "MISSING_CREDITS")

    now = utc_now()
    try:
        payment = models.Payment(
            student_profile_id=student_profile_id,
            amount=0,
            currency=get_settings().payment_currency.upper(),
            payment_method=models.PaymentMethodType.admin,
            external_payment_id=f"admin_{int(now.timestamp() * 1000)}_{student_profile_id}",
            status=models.PaymentStatus.completed,
            payment_date=now,
            notes=notes or "Credits added by admin",
        )
        db.add(payment)
        db.flush()
        if package is not None:
            purchase = create_package_purchase(
                db,
                student_profile_id=student_profile_id,
                package=package,
                payment=payment,
                credits=credits,
                expiration_days=expiration_days,
                notes=notes,
            )
        else:
            days = expiration_days or _DEFAULT_MANUAL_VALIDITY_DAYS
            purchase = models.StudentPurchase(
                student_profile_id=student_profile_id,
                purchase_type=models.PurchaseType.package,
                credits_remaining=credits,
                credits_total=credits,
                purchased_at=now,
                expires_at=now + timedelta(days=days),
                is_active=True,
                payment_id=payment.id,
                notes=notes,
            )
            db.add(purchase)
        db.flush()
        db.add(
            models.AuditLog(
                actor_type=models.ActorType.admin,
                actor_id=actor_id,
                action="credits_added",
                entity_type="student_purchase",
                entity_id=purchase.id,
                payload={
                    "student_profile_id": student_profile_id,
                    "credits": purchase.credits_total,
                    "package_id": package_id,
                },
            )
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(purchase)
    return purchase, payment


__all__ = [
    "CreditsSummary",
    "RenewalError",
    "get_active_purchases",
    "get_credits_summary",
    "select_purchase_for_booking",
    "consume_credit",
    "refund_credit",
    "expire_credits",
    "process_renewals",
    "get_purchase",
    "toggle_auto_renew",
    "create_package_purchase",
    "create_membership_purchase",
    "add_credits",
]
