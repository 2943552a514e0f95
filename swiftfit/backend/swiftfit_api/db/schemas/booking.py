from datetime import datetime
from pydantic import Field

from .common import CamelModel


class BookingCreate(CamelModel):
    class_id: int | None = None
    student_profile_id: int | None = None


class AttendanceUpdate(CamelModel):
    status: str | None = None


class BulkAttendance(CamelModel):
    class_id: int | None = None
    attendees: list[int] = Field(default_factory=list)
    no_shows: list[int] = Field(default_factory=list)


class Booking(CamelModel):
    id: int
    class_id: int
    student_profile_id: int
    status: str
    booked_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancellation_type: str | None = None
    credits_used: int = 0
    purchase_id: int | None = None
    payment_id: int | None = None


class CancellationDetails(CamelModel):
    type: str
    hours_before_class: float
    credit_refunded: bool
    credits_refunded: int = 0
    penalty_applied: bool


class BookingCancelResponse(CamelModel):
    message: str
    booking: Booking
    cancellation_details: CancellationDetails


class AttendanceFailure(CamelModel):
    booking_id: int
    error: str


class BulkAttendanceResponse(CamelModel):
    message: str
    updated_count: int
    failures: list[AttendanceFailure] = Field(default_factory=list)
