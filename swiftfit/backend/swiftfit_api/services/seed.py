from datetime import time, timedelta
from decimal import Decimal
from sqlalchemy.orm import Session
from ..db.session import SessionLocal
from ..db import models
from ..config import get_settings
from ..core.timeutils import utc_now
from .admin import ensure_admin_exists


def seed(session: Session) -> None:
    settings = get_settings()
    admin_profile = ensure_admin_exists(
        session, settings.admin_email, settings.default_admin_password
    )
    if session.query(models.StudioInfo).count() == 0:
        session.add(
            models.StudioInfo(
                studio_name="Swift Fit Pilates",
                email=settings.admin_email,
                cancellation_window_hours=settings.cancellation_window_hours,
            )
        )
    if session.query(models.ClassType).count() == 0:
        class_type = models.ClassType(
            name="Reformer Pilates",
            description="Full-body reformer session for all levels",
            duration_minutes=50,
        )
        instructor = models.Instructor(
            user_profile_id=admin_profile.id, name="Studio Owner", bio="Lead instructor"
        )
        session.add_all([class_type, instructor])
        session.flush()
        session.add(
            models.ClassSession(
                class_type_id=class_type.id,
                instructor_id=instructor.id,
                date=(utc_now() + timedelta(days=1)).date(),
                start_time=time(9, 0),
                end_time=time(9, 50),
                capacity=12,
                price=Decimal("30.00"),
            )
        )
    if session.query(models.Package).count() == 0:
        session.add(
            models.Package(
                name="10 Class Pack",
                credits=10,
                price=Decimal("250.00"),
                expiration_days=90,
            )
        )
    if session.query(models.Membership).count() == 0:
        session.add(
            models.Membership(
                name="Unlimited Monthly",
                price_monthly=Decimal("199.00"),
                is_unlimited=True,
            )
        )
    session.commit()


if __name__ == "__main__":
    with SessionLocal() as session:
        seed(session)
        print("Seed data created")
