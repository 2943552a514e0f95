from .booking import (
    AttendanceUpdate,
    Booking,
    BookingCancelResponse,
    BookingCreate,
    BulkAttendance,
    BulkAttendanceResponse,
)
from .catalog import (
    ClassType,
    ClassTypeCreate,
    Instructor,
    InstructorCreate,
    Membership,
    MembershipCreate,
    Package,
    PackageCreate,
)
from .class_session import ClassRegistrations, ClassSession, ClassSessionCreate, ClassSessionUpdate
from .payment import Payment, PurchaseResult
from .payment_method import PaymentMethod, PaymentMethodCreate
from .purchase import (
    AddCreditsRequest,
    CreditsSummary,
    ExpireCreditsResult,
    PurchaseCreate,
    RenewalSummary,
    StudentPurchase,
    ToggleRenewalResponse,
)
from .reminder import (
    ClassReminder,
    DueReminders,
    PreClassReminderResult,
    ReminderMarkSent,
    ReminderSchedule,
    ReminderSweepResult,
)
from .report import (
    AttendanceReport,
    InstructorRevenueReport,
    PopularClassesReport,
    RevenueReport,
)
from .studio_info import StudioInfo, StudioInfoUpdate
from .user import (
    ProfileUpdate,
    RegisterRequest,
    SendVerificationRequest,
    SendVerificationResponse,
    TokenResponse,
    UserProfile,
)
from .waitlist import PromoteRequest, PromoteResponse, WaitlistEntry, WaitlistJoin
