from datetime import timedelta
from decimal import Decimal
import itertools
import time

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from swiftfit_api.api import deps
from swiftfit_api.api.routes import (
    attendance,
    auth,
    bookings,
    catalog,
    class_reminders,
    classes,
    credits,
    cron,
    misc,
    reports,
    payment_methods,
    purchases,
    studio_info,
    upload,
    waitlist,
)
from swiftfit_api.config import get_settings
from swiftfit_api.core.errors import AuthError, install_error_handlers
from swiftfit_api.core.rate_limit import RateLimiter, set_rate_limiter
from swiftfit_api.core.timeutils import utc_now
from swiftfit_api.db import models
from swiftfit_api.db.session import Base, get_db

_counter = itertools.count(1)


class FakeRedis:
    """In-memory stand-in for the redis commands the rate limiter sends."""

    def __init__(self, clock=time.time):
        self._clock = clock
        self._values = {}
        self._expires = {}

    def _purge(self, key):
        expires_at = self._expires.get(key)
        if expires_at is not None and expires_at <= self._clock():
            self._values.pop(key, None)
            self._expires.pop(key, None)

    def set(self, key, value, nx=False, px=None):
        self._purge(key)
        if nx and key in self._values:
            return None
        self._values[key] = str(value)
        self._expires.pop(key, None)
        if px is not None:
            self._expires[key] = self._clock() + px / 1000
        return True

    def incr(self, key):
        self._purge(key)
        value = int(self._values.get(key, 0)) + 1
        self._values[key] = str(value)
        return value

    def pexpire(self, key, ms):
        self._purge(key)
        if key not in self._values:
            return False
        self._expires[key] = self._clock() + ms / 1000
        return True

    def pttl(self, key):
        self._purge(key)
        if key not in self._values:
            return -2
        expires_at = self._expires.get(key)
        if expires_at is None:
            return -1
        return int(round((expires_at - self._clock()) * 1000))

    def pipeline(self):
        return FakePipeline(self)


class FakePipeline:
    def __init__(self, client):
        self._client = client
        self._queued = []

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self._queued = []

    def __getattr__(self, name):
        command = getattr(self._client, name)

        def queue(*args, **kwargs):
            self._queued.append((command, args, kwargs))
            return self

        return queue

    def execute(self):
        results = [command(*args, **kwargs) for command, args, kwargs in self._queued]
        self._queued = []
        return results


@pytest.fixture()
def fake_redis():
    return FakeRedis


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    monkeypatch.delenv("RESEND_API_KEY", raising=False)
    monkeypatch.delenv("CRON_SECRET", raising=False)
    monkeypatch.delenv("TIMEZONE", raising=False)
    get_settings.cache_clear()
    set_rate_limiter(RateLimiter(FakeRedis()))
    yield
    get_settings.cache_clear()
    set_rate_limiter(None)


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )
    yield factory
    engine.dispose()


@pytest.fixture()
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def make_profile(db_session):
    def factory(role=models.UserRole.student, *, email=None, name="Test Student", **profile_fields):
        number = next(_counter)
        user = models.User(
            email=email or f"user{number}@example.com",
            name=name,
            password_hash=None,
        )
        db_session.add(user)
        db_session.flush()
        profile = models.UserProfile(user_id=user.id, role=role, **profile_fields)
        db_session.add(profile)
        db_session.commit()
        db_session.refresh(profile)
        return profile

    return factory


@pytest.fixture()
def make_class(db_session):
    def factory(*, hours_ahead=48, capacity=10, status=models.ClassStatus.scheduled):
        class_type = db_session.query(models.ClassType).filter_by(name="Reformer").first()
        if class_type is None:
            class_type = models.ClassType(name="Reformer", duration_minutes=50)
            db_session.add(class_type)
            db_session.flush()
        starts_at = utc_now() + timedelta(hours=hours_ahead)
        class_session = models.ClassSession(
            class_type_id=class_type.id,
            date=starts_at.date(),
            start_time=starts_at.time(),
            end_time=(starts_at + timedelta(minutes=50)).time(),
            capacity=capacity,
            price=Decimal("25.00"),
            status=status,
        )
        db_session.add(class_session)
        db_session.commit()
        db_session.refresh(class_session)
        return class_session

    return factory


@pytest.fixture()
def give_package(db_session):
    def factory(profile, *, credits=5, expires_in_days=30, is_active=True):
        package = models.Package(name=f"{credits} Pack", credits=credits, price=Decimal("100.00"))
        db_session.add(package)
        db_session.flush()
        expires_at = utc_now() + timedelta(days=expires_in_days) if expires_in_days is not None else None
        purchase = models.StudentPurchase(
            student_profile_id=profile.id,
            purchase_type=models.PurchaseType.package,
            package_id=package.id,
            credits_remaining=credits,
            credits_total=credits,
            expires_at=expires_at,
            is_active=is_active,
        )
        db_session.add(purchase)
        db_session.commit()
        db_session.refresh(purchase)
        return purchase

    return factory


@pytest.fixture()
def give_membership(db_session):
    def factory(profile, *, unlimited=True, credits_per_month=None, expires_in=timedelta(days=30), auto_renew=False):
        membership = models.Membership(
            name="Unlimited" if unlimited else f"{credits_per_month} per month",
            price_monthly=Decimal("199.00"),
            is_unlimited=unlimited,
            credits_per_month=credits_per_month,
        )
        db_session.add(membership)
        db_session.flush()
        credits = models.UNLIMITED_CREDITS if unlimited else credits_per_month
        purchase = models.StudentPurchase(
            student_profile_id=profile.id,
            purchase_type=models.PurchaseType.membership,
            membership_id=membership.id,
            credits_remaining=credits,
            credits_total=credits,
            expires_at=utc_now() + expires_in,
            is_active=True,
            auto_renew=auto_renew,
        )
        db_session.add(purchase)
        db_session.commit()
        db_session.refresh(purchase)
        return purchase

    return factory


@pytest.fixture()
def api_client(session_factory):
    """Client for the full router set, plus a helper to pick the caller's profile."""

    state = {"profile_id": None}

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    def override_get_current_profile(db: Session = Depends(get_db)):
        if state["profile_id"] is None:
            raise AuthError("Authentication required")
        return db.get(models.UserProfile, state["profile_id"])

    def act_as(profile):
        state["profile_id"] = profile.id if profile is not None else None

    test_app = FastAPI()
    install_error_handlers(test_app)
    for module in (
        auth,
        classes,
        bookings,
        attendance,
        waitlist,
        credits,
        purchases,
        class_reminders,
        cron,
        payment_methods,
        upload,
        catalog,
        studio_info,
        misc,
        reports,
    ):
        test_app.include_router(module.router, prefix="/api")
    test_app.dependency_overrides[get_db] = override_get_db
    test_app.dependency_overrides[deps.get_current_profile] = override_get_current_profile

    with TestClient(test_app, raise_server_exceptions=False) as client:
        yield client, act_as

    test_app.dependency_overrides.clear()
