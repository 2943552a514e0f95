import datetime as dt
from enum import Enum as PyEnum
from sqlalchemy import (
    CheckConstraint,
    Date,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    Time,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..session import Base


class ClassStatus(str, PyEnum):
    scheduled = "scheduled"
    completed = "completed"
    cancelled = "cancelled"


class ClassSession(Base):
    __tablename__ = "classes"
    __table_args__ = (
        CheckConstraint("capacity > 0", name="ck_classes_capacity_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    class_type_id: Mapped[int] = mapped_column(ForeignKey("class_types.id", ondelete="CASCADE"))
    instructor_id: Mapped[int | None] = mapped_column(ForeignKey("instructors.id", ondelete="SET NULL"))
    date: Mapped[dt.date] = mapped_column(Date, index=True)
    start_time: Mapped[dt.time] = mapped_column(Time)
    end_time: Mapped[dt.time] = mapped_column(Time)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=15)
    price: Mapped[float | None] = mapped_column(Numeric(10, 2))
    status: Mapped[ClassStatus] = mapped_column(Enum(ClassStatus), default=ClassStatus.scheduled)

    class_type = relationship("ClassType", back_populates="classes")
    instructor = relationship("Instructor")
    bookings = relationship("Booking", back_populates="class_session")
