import datetime as dt

from .common import CamelModel


class DateRange(CamelModel):
    start_date: str
    end_date: str


class PaymentMethodBreakdown(CamelModel):
    square: float = 0.0
    cash: float = 0.0
    other: float = 0.0


class RevenueByDate(CamelModel):
    date: str
    revenue: float


class RevenueFilters(CamelModel):
    payment_method: str = "all"


class RevenueReport(CamelModel):
    total_revenue: float
    total_transactions: int
    average_transaction_amount: float
    payment_method_breakdown: PaymentMethodBreakdown
    pending_payments: float
    refunded_amount: float
    revenue_by_date: list[RevenueByDate]
    date_range: DateRange
    filters: RevenueFilters


class AttendanceReport(CamelModel):
    total_bookings: int
    completed_classes: int
    attended_bookings: int
    cancelled_bookings: int
    no_shows: int
    attendance_rate: float
    cancellation_rate: float
    no_show_rate: float
    average_bookings_per_class: float
    date_range: DateRange


class PopularClass(CamelModel):
    class_id: int
    class_type_id: int | None = None
    class_type_name: str | None = None
    instructor_id: int | None = None
    date: dt.date
    start_time: dt.time
    booking_count: int
    confirmed_count: int
    cancelled_count: int


class PopularClassType(CamelModel):
    class_type_id: int
    class_type_name: str
    total_bookings: int
    confirmed_bookings: int


class PopularInstructor(CamelModel):
    instructor_id: int
    instructor_name: str
    total_bookings: int
    confirmed_bookings: int
    classes_count: int


class PopularTimeSlot(CamelModel):
    time_slot: dt.time
    total_bookings: int
    confirmed_bookings: int
    classes_count: int


class PopularClassesReport(CamelModel):
    top_classes: list[PopularClass]
    top_class_types: list[PopularClassType]
    top_instructors: list[PopularInstructor]
    most_popular_time_slots: list[PopularTimeSlot]
    date_range: DateRange


class InstructorStats(CamelModel):
    instructor_id: int
    instructor_name: str
    instructor_email: str | None = None
    total_classes: int
    total_bookings: int
    total_attended: int
    total_no_shows: int
    total_confirmed: int
    attendance_rate: int
    total_credits_used: int
    avg_bookings_per_class: float


class InstructorTotals(CamelModel):
    total_instructors: int
    total_classes: int
    total_bookings: int
    total_attended: int
    total_no_shows: int
    total_credits_used: int
    overall_attendance_rate: int


class InstructorRevenueReport(CamelModel):
    instructors: list[InstructorStats]
    totals: InstructorTotals
    date_range: DateRange
