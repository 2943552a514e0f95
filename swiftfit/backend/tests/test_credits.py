import pytest

from swiftfit_api.core.errors import InvalidPurchaseType, NoActivePurchases, PurchaseNotFound
from swiftfit_api.db import models
from swiftfit_api.services import credit_service


def test_summary_splits_packages_and_memberships(db_session, make_profile, give_package, give_membership):
    student = make_profile()
    give_package(student, credits=3)
    give_package(student, credits=2)
    give_membership(student)

    summary = credit_service.get_credits_summary(db_session, student.id)

    assert len(summary.packages) == 2
    assert len(summary.memberships) == 1
    assert summary.total_credits == 5
    assert summary.has_unlimited_access is True


def test_summary_ignores_expired_and_inactive(db_session, make_profile, give_package):
    student = make_profile()
    give_package(student, credits=3, expires_in_days=-2)
    give_package(student, credits=4, is_active=False)
    active = give_package(student, credits=1)

    summary = credit_service.get_credits_summary(db_session, student.id)

    assert [p.id for p in summary.packages] == [active.id]
    assert summary.total_credits == 1
    assert summary.has_unlimited_access is False


def test_summary_without_purchases(db_session, make_profile):
    student = make_profile()

    with pytest.raises(NoActivePurchases):
        credit_service.get_credits_summary(db_session, student.id)


def test_toggle_auto_renew_flips_flag(db_session, make_profile, give_membership):
    student = make_profile()
    purchase = give_membership(student, auto_renew=False)

    purchase = credit_service.toggle_auto_renew(db_session, purchase)
    assert purchase.auto_renew is True
    assert purchase.next_billing_date is not None

    purchase = credit_service.toggle_auto_renew(db_session, purchase)
    assert purchase.auto_renew is False
    assert purchase.next_billing_date is None


def test_toggle_auto_renew_rejects_packages(db_session, make_profile, give_package):
    student = make_profile()
    purchase = give_package(student)

    with pytest.raises(InvalidPurchaseType):
        credit_service.toggle_auto_renew(db_session, purchase)


def test_get_purchase_missing(db_session):
    with pytest.raises(PurchaseNotFound):
        credit_service.get_purchase(db_session, 404)


def test_add_credits_records_admin_payment(db_session, make_profile):
    student = make_profile()
    admin = make_profile(models.UserRole.admin)

    purchase, payment = credit_service.add_credits(
        db_session,
        student_profile_id=student.id,
        credits=6,
        expiration_days=14,
        notes="Comp for cancelled workshop",
        actor_id=admin.id,
    )

    assert purchase.credits_remaining == 6
    assert purchase.is_active is True
    assert purchase.payment_id == payment.id
    assert float(payment.amount) == 0
    assert payment.payment_method == models.PaymentMethodType.admin
    assert payment.status == models.PaymentStatus.completed
    audit = db_session.query(models.AuditLog).filter_by(entity_id=purchase.id).one()
    assert audit.actor_id == admin.id
    assert audit.payload["credits"] == 6


def test_add_credits_from_package_uses_package_defaults(db_session, make_profile):
    student = make_profile()
    package = models.Package(name="Intro", credits=3, price=60, expiration_days=21)
    db_session.add(package)
    db_session.commit()

    purchase, _ = credit_service.add_credits(
        db_session, student_profile_id=student.id, package_id=package.id
    )

    assert purchase.package_id == package.id
    assert purchase.credits_total == 3
    summary = credit_service.get_credits_summary(db_session, student.id)
    assert summary.total_credits == 3
