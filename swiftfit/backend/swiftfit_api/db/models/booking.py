from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Integer, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..session import Base


class BookingStatus(str, PyEnum):
    confirmed = "confirmed"
    cancelled = "cancelled"
    attended = "attended"
    no_show = "no_show"
    late_cancel = "late_cancel"


class CancellationType(str, PyEnum):
    on_time = "on_time"
    late = "late"
    no_show = "no_show"
    class_cancelled = "class_cancelled"


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("credits_used >= 0", name="ck_bookings_credits_used_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    class_id: Mapped[int] = mapped_column(ForeignKey("classes.id", ondelete="CASCADE"), index=True)
    student_profile_id: Mapped[int] = mapped_column(
        ForeignKey("user_profiles.id", ondelete="CASCADE"), index=True
    )
    status: Mapped[BookingStatus] = mapped_column(Enum(BookingStatus), default=BookingStatus.confirmed)
    booked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancellation_type: Mapped[CancellationType | None] = mapped_column(Enum(CancellationType))
    credits_used: Mapped[int] = mapped_column(Integer, default=0)
    purchase_id: Mapped[int | None] = mapped_column(ForeignKey("student_purchases.id", ondelete="SET NULL"))
    payment_id: Mapped[int | None] = mapped_column(ForeignKey("payments.id", ondelete="SET NULL"))
    reminder_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    student = relationship("UserProfile")
    class_session = relationship("ClassSession", back_populates="bookings")
    purchase = relationship("StudentPurchase")
