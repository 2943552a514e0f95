import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from ..config import get_settings
from ..core.errors import NotFoundError, UpstreamError, ValidationError
from ..db import models
from . import credit_service
from .payments import gateway

logger = logging.getLogger(__name__)

_PAYMENT_METHOD_BY_PROVIDER = {
    "stub": models.PaymentMethodType.stub,
    "square": models.PaymentMethodType.square,
}


def _resolve_product(
    db: Session, package_id: int | None, membership_id: int | None
) -> models.Package | models.Membership:
    if (package_id is None) == (membership_id is None):
        raise ValidationError("Provide exactly one of packageId or membershipId", "INVALID_PRODUCT")
    if package_id is not None:
        package = db.get(models.Package, package_id)
        if package is None or not package.is_active:
            raise NotFoundError("Package not found", "PACKAGE_NOT_FOUND")
        return package
    membership = db.get(models.Membership, membership_id)
    if membership is None or not membership.is_active:
        raise NotFoundError("Membership not found", "MEMBERSHIP_NOT_FOUND")
    return membership


def create_payment(
    db: Session,
    student: models.UserProfile,
    amount: float,
    description: str,
    source_id: str | None = None,
) -> models.Payment:
    """Charge through the configured gateway and record the outcome.

    A declined charge is stored as a ``failed`` payment before ``UpstreamError``
    is raised.
    """

    order_id = str(uuid.uuid4())
    settings = get_settings()
    currency = (settings.payment_currency or "USD").upper()
    payment = models.Payment(
        student_profile_id=student.id,
        amount=amount,
        currency=currency,
        payment_method=_PAYMENT_METHOD_BY_PROVIDER.get(
            settings.payment_provider, models.PaymentMethodType.square
        ),
        external_payment_id=order_id,
        status=models.PaymentStatus.pending,
        payment_date=datetime.now(timezone.utc),
        notes=description,
    )
    db.add(payment)
    db.commit()
    db.refresh(payment)

    gateway_client = gateway.get_gateway(settings)
    try:
        gateway_response = gateway_client.create_payment(
            order_id=order_id,
            amount=amount,
            currency=currency,
            description=description,
            source_id=source_id,
            metadata={"student_profile_id": student.id},
        )
    except gateway.PaymentGatewayError as exc:
        payment.status = models.PaymentStatus.failed
        db.commit()
        raise UpstreamError(str(exc), "PAYMENT_FAILED") from exc

    provider_payment_id = gateway_response.get("provider_payment_id")
    if provider_payment_id:
        payment.external_payment_id = provider_payment_id
    try:
        payment.status = models.PaymentStatus(gateway_response.get("status"))
    except ValueError:
        payment.status = models.PaymentStatus.failed
    db.commit()
    db.refresh(payment)
    if payment.status == models.PaymentStatus.failed:
        raise UpstreamError("Payment was not completed", "PAYMENT_FAILED")
    return payment


def purchase(
    db: Session,
    student: models.UserProfile,
    *,
    package_id: int | None = None,
    membership_id: int | None = None,
    source_id: str | None = None,
    auto_renew: bool = False,
) -> tuple[models.Payment, models.StudentPurchase]:
    product = _resolve_product(db, package_id, membership_id)
    if isinstance(product, models.Package):
        amount = float(product.price)
    else:
        amount = float(product.price_monthly)

    payment = create_payment(
        db,
        student,
        amount=amount,
        description=f"Swift Fit: {product.name}",
        source_id=source_id,
    )
    if payment.status != models.PaymentStatus.completed:
        raise UpstreamError("Payment is still pending", "PAYMENT_PENDING")

    try:
        if isinstance(product, models.Package):
            student_purchase = credit_service.create_package_purchase(
                db, student_profile_id=student.id, package=product, payment=payment
            )
        else:
            student_purchase = credit_service.create_membership_purchase(
                db,
                student_profile_id=student.id,
                membership=product,
                payment=payment,
                auto_renew=auto_renew,
            )
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(
            "Payment captured but purchase was not recorded",
            extra={"payment_id": payment.id, "student_profile_id": student.id},
        )
        raise
    db.refresh(student_purchase)
    logger.info(
        "Purchase completed",
        extra={
            "payment_id": payment.id,
            "purchase_id": student_purchase.id,
            "amount": amount,
        },
    )
    return payment, student_purchase


__all__ = ["create_payment", "purchase"]
