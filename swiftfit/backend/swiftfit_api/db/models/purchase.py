from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..session import Base

UNLIMITED_CREDITS = -1


class PurchaseType(str, PyEnum):
    package = "package"
    membership = "membership"


class StudentPurchase(Base):
    __tablename__ = "student_purchases"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    student_profile_id: Mapped[int] = mapped_column(
        ForeignKey("user_profiles.id", ondelete="CASCADE"), index=True
    )
    purchase_type: Mapped[PurchaseType] = mapped_column(Enum(PurchaseType), nullable=False)
    package_id: Mapped[int | None] = mapped_column(ForeignKey("packages.id"))
    membership_id: Mapped[int | None] = mapped_column(ForeignKey("memberships.id"))
    credits_remaining: Mapped[int | None] = mapped_column(Integer)
    credits_total: Mapped[int | None] = mapped_column(Integer)
    purchased_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    auto_renew: Mapped[bool] = mapped_column(Boolean, default=False)
    next_billing_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    payment_id: Mapped[int | None] = mapped_column(ForeignKey("payments.id", ondelete="SET NULL"))
    notes: Mapped[str | None] = mapped_column(Text)

    student = relationship("UserProfile")
    package = relationship("Package")
    membership = relationship("Membership")
    payment = relationship("Payment")

    @property
    def is_unlimited(self) -> bool:
        return self.purchase_type == PurchaseType.membership and (
            self.credits_remaining is None or self.credits_remaining == UNLIMITED_CREDITS
        )
