from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import (
    CHAR,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..session import Base


class PaymentStatus(str, PyEnum):
    pending = "pending"
    completed = "completed"
    failed = "failed"
    refunded = "refunded"


class PaymentMethodType(str, PyEnum):
    square = "square"
    stub = "stub"
    admin = "admin"
    cash = "cash"


class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (
        UniqueConstraint("external_payment_id", name="uq_payment_external_payment_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    student_profile_id: Mapped[int] = mapped_column(
        ForeignKey("user_profiles.id", ondelete="CASCADE"), index=True
    )
    amount: Mapped[float] = mapped_column(Numeric(10, 2))
    currency: Mapped[str] = mapped_column(CHAR(3), default="USD")
    payment_method: Mapped[PaymentMethodType] = mapped_column(Enum(PaymentMethodType))
    external_payment_id: Mapped[str | None] = mapped_column(String(128), index=True)
    status: Mapped[PaymentStatus] = mapped_column(Enum(PaymentStatus), default=PaymentStatus.pending)
    payment_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    notes: Mapped[str | None] = mapped_column(Text)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    student = relationship("UserProfile")
