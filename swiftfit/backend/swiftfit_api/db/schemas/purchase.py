from __future__ import annotations

from datetime import datetime

from pydantic import Field

from .common import CamelModel


class StudentPurchase(CamelModel):
    id: int
    student_profile_id: int
    purchase_type: str
    package_id: int | None = None
    membership_id: int | None = None
    credits_remaining: int | None = None
    credits_total: int | None = None
    purchased_at: datetime | None = None
    expires_at: datetime | None = None
    is_active: bool
    auto_renew: bool = False
    next_billing_date: datetime | None = None
    payment_id: int | None = None


class CreditsSummary(CamelModel):
    student_profile_id: int
    packages: list[StudentPurchase]
    memberships: list[StudentPurchase]
    total_credits: int
    has_unlimited_access: bool


class ToggleRenewalResponse(CamelModel):
    message: str
    purchase: StudentPurchase


class RenewalItem(CamelModel):
    purchase_id: int
    student_profile_id: int
    membership_name: str | None = None
    amount: float | None = None
    status: str
    error: str | None = None


class RenewalSummary(CamelModel):
    total_processed: int
    successful_renewals: int
    failed_renewals: int
    renewals: list[RenewalItem]


class ExpiredPurchase(CamelModel):
    purchase_id: int
    student_profile_id: int
    credits_expired: int | None = None
    expires_at: datetime | None = None


class ExpireCreditsResult(CamelModel):
    success: bool = True
    message: str
    deactivated_count: int
    details: list[ExpiredPurchase]
    timestamp: datetime


class AddCreditsRequest(CamelModel):
    student_profile_id: int
    package_id: int | None = None
    credits: int | None = Field(default=None, gt=0)
    expiration_days: int | None = Field(default=None, gt=0)
    notes: str | None = None


class PurchaseCreate(CamelModel):
    package_id: int | None = None
    membership_id: int | None = None
    student_profile_id: int | None = None
    source_id: str | None = None
    auto_renew: bool = False
