"""Email address verification through signed links."""

from __future__ import annotations

import logging
from urllib.parse import urlencode

from jose import JWTError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..core import security
from ..core.errors import ValidationError
from ..db import models
from . import notification_service

logger = logging.getLogger(__name__)

VERIFY_PATH = "/api/auth/verify-email-custom"


def _base_url() -> str:
    return get_settings().auth_url.rstrip("/")


def verification_url(token: str) -> str:
    return f"{_base_url()}{VERIFY_PATH}?{urlencode({'token': token})}"


def send_verification(db: Session, email: str | None) -> dict:
    """Email a verification link.

    Unknown addresses get the same answer as known ones so the endpoint cannot
    be used to discover accounts.
    """

    if not email or not email.strip():
        raise ValidationError("Email is required", "MISSING_EMAIL")
    user = db.query(models.User).filter_by(email=email.strip().lower()).first()
    if user is None:
        logger.info("Verification requested for unknown email")
        return {"status": True}
    if user.email_verified:
        return {"status": True, "message": "Already verified"}

    token = security.create_verification_token(user.email, user.id)
    message = notification_service.build_verification_email(
        email=user.email, name=user.name, verify_url=verification_url(token)
    )
    notification_service.send_emails([message])
    logger.info("Verification email queued", extra={"user_id": user.id})
    return {"status": True}


def _redirect(path: str) -> str:
    return f"{_base_url()}{path}"


def verify(db: Session, token: str | None) -> str:
    """Apply a verification token and return the URL to redirect the browser to."""

    if not token:
        return _redirect("/verify-email?error=missing-token")
    try:
        payload = security.decode_verification_token(token)
    except JWTError:
        return _redirect("/verify-email?error=expired")

    email = payload.get("email")
    user_id = payload.get("userId")
    if not email or user_id is None:
        return _redirect("/verify-email?error=invalid-token")

    try:
        user = db.get(models.User, int(user_id))
        if user is None or user.email != email:
            return _redirect("/verify-email?error=invalid-token")
        user.email_verified = True
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Email verification failed", extra={"user_id": user_id})
        return _redirect("/verify-email?error=server")
    logger.info("Email verified", extra={"user_id": user.id})
    return _redirect("/login?verified=true")


__all__ = ["send_verification", "verify", "verification_url"]
