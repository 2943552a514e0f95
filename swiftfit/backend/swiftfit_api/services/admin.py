import logging
from sqlalchemy.orm import Session

from ..core import security
from ..core.errors import ConflictError
from ..db import models

logger = logging.getLogger(__name__)


def ensure_admin_exists(session: Session, email: str, password: str) -> models.UserProfile:
    email = email.strip().lower()
    user = session.query(models.User).filter_by(email=email).first()
    if user:
        updated = False
        if not user.password_hash or not security.verify_password(password, user.password_hash):
            user.password_hash = security.get_password_hash(password)
            updated = True
        profile = user.profile
        if profile is None:
            profile = models.UserProfile(user_id=user.id, role=models.UserRole.admin)
            session.add(profile)
            updated = True
        elif profile.role != models.UserRole.admin:
            profile.role = models.UserRole.admin
            updated = True
        if updated:
            session.commit()
            logger.info("Updated default admin user '%s'", email)
        else:
            logger.info("Admin user '%s' already exists", email)
        return profile

    user = models.User(
        email=email,
        name="Studio Admin",
        password_hash=security.get_password_hash(password),
        email_verified=True,
    )
    session.add(user)
    session.flush()
    profile = models.UserProfile(user_id=user.id, role=models.UserRole.admin)
    session.add(profile)
    session.commit()
    logger.info("Created default admin user '%s'", email)
    return profile


def register_student(
    session: Session,
    *,
    email: str,
    password: str,
    name: str | None = None,
    phone: str | None = None,
) -> models.UserProfile:
    email = email.strip().lower()
    if session.query(models.User).filter_by(email=email).first():
        raise ConflictError("An account with this email already exists", "EMAIL_TAKEN")
    user = models.User(
        email=email,
        name=name,
        password_hash=security.get_password_hash(password),
    )
    session.add(user)
    session.flush()
    profile = models.UserProfile(user_id=user.id, role=models.UserRole.student, phone=phone)
    session.add(profile)
    session.commit()
    session.refresh(profile)
    logger.info("Registered student", extra={"user_id": user.id})
    return profile
