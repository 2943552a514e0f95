import datetime as dt
from pydantic import Field

from .booking import Booking
from .common import CamelModel
from .waitlist import WaitlistEntry


class ClassSessionBase(CamelModel):
    class_type_id: int
    instructor_id: int | None = None
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    capacity: int = Field(default=15, gt=0)
    price: float | None = None


class ClassSessionCreate(ClassSessionBase):
    pass


class ClassSessionUpdate(CamelModel):
    class_type_id: int | None = None
    instructor_id: int | None = None
    date: dt.date | None = None
    start_time: dt.time | None = None
    end_time: dt.time | None = None
    price: float | None = None


class ClassSession(ClassSessionBase):
    id: int
    status: str = "scheduled"
    class_type_name: str | None = None
    instructor_name: str | None = None
    booked_count: int = 0
    spots_available: int = 0


class ClassRegistrations(CamelModel):
    class_session: ClassSession = Field(alias="class")
    bookings: list[Booking]
    waitlist: list[WaitlistEntry]
