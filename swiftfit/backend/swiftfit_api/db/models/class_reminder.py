import datetime as dt
from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..session import Base


class ClassReminder(Base):
    __tablename__ = "class_reminder_tracking"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    student_profile_id: Mapped[int | None] = mapped_column(
        ForeignKey("user_profiles.id", ondelete="CASCADE"), index=True
    )
    email: Mapped[str | None] = mapped_column(String(255))
    last_class_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    reminder_scheduled_for: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    reminder_sent: Mapped[bool] = mapped_column(Boolean, default=False)
    reminder_sent_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    student = relationship("UserProfile")
