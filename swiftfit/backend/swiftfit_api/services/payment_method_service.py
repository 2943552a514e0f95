from __future__ import annotations

from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.constants import PAYMENT_METHODS_MAX_LIMIT
from ..core.errors import ConflictError, NotFoundError, ValidationError
from ..db import models


def _parse_int(value: Any, code: str, label: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a valid integer", code)
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{label} must be a valid integer", code) from exc


def get_payment_method(db: Session, payment_method_id: Any) -> models.PaymentMethod:
    parsed_id = _parse_int(payment_method_id, "INVALID_ID", "id")
    payment_method = db.get(models.PaymentMethod, parsed_id)
    if payment_method is None:
        raise NotFoundError("Payment method not found", "NOT_FOUND")
    return payment_method


def list_payment_methods(
    db: Session,
    *,
    limit: int = 10,
    offset: int = 0,
    student_profile_id: int | None = None,
    is_default: bool | None = None,
) -> list[models.PaymentMethod]:
    limit = max(1, min(limit, PAYMENT_METHODS_MAX_LIMIT))
    offset = max(offset, 0)
    query = db.query(models.PaymentMethod)
    if student_profile_id is not None:
        query = query.filter(models.PaymentMethod.student_profile_id == student_profile_id)
    if is_default is not None:
        query = query.filter(models.PaymentMethod.is_default.is_(is_default))
    return query.order_by(models.PaymentMethod.id).offset(offset).limit(limit).all()


def create_payment_method(
    db: Session,
    *,
    student_profile_id: Any,
    square_card_id: Any,
    card_brand: str | None = None,
    last_4: str | None = None,
    exp_month: int | None = None,
    exp_year: int | None = None,
    is_default: bool = False,
) -> models.PaymentMethod:
    if student_profile_id is None or student_profile_id == "":
        raise ValidationError("studentProfileId is required", "MISSING_STUDENT_PROFILE_ID")
    if square_card_id is None:
        raise ValidationError("squareCardId is required", "MISSING_SQUARE_CARD_ID")
    if not isinstance(square_card_id, str) or not square_card_id.strip():
        raise ValidationError("squareCardId cannot be empty", "EMPTY_SQUARE_CARD_ID")
    profile_id = _parse_int(student_profile_id, "INVALID_STUDENT_PROFILE_ID", "studentProfileId")
    card_id = square_card_id.strip()

    if db.get(models.UserProfile, profile_id) is None:
        raise ConflictError(
            "Student profile does not exist", "INVALID_STUDENT_PROFILE_REFERENCE"
        )
    if db.query(models.PaymentMethod).filter_by(square_card_id=card_id).first():
        raise ConflictError(
            "A payment method with this Square card ID already exists",
            "DUPLICATE_SQUARE_CARD_ID",
        )

    try:
        if is_default:
            db.query(models.PaymentMethod).filter(
                models.PaymentMethod.student_profile_id == profile_id
            ).update({models.PaymentMethod.is_default: False}, synchronize_session=False)
        payment_method = models.PaymentMethod(
            student_profile_id=profile_id,
            square_card_id=card_id,
            card_brand=card_brand.strip() if card_brand else None,
            last_4=last_4.strip() if last_4 else None,
            exp_month=exp_month,
            exp_year=exp_year,
            is_default=is_default,
        )
        db.add(payment_method)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(
            "A payment method with this Square card ID already exists",
            "DUPLICATE_SQUARE_CARD_ID",
        ) from exc
    db.refresh(payment_method)
    return payment_method


def delete_payment_method(db: Session, payment_method: models.PaymentMethod) -> None:
    db.delete(payment_method)
    db.commit()


__all__ = [
    "get_payment_method",
    "list_payment_methods",
    "create_payment_method",
    "delete_payment_method",
]
