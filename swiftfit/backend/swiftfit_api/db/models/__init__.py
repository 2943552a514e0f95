from .user import User, UserProfile, UserRole
from .instructor import Instructor
from .class_type import ClassType
from .class_session import ClassSession, ClassStatus
from .booking import Booking, BookingStatus, CancellationType
from .waitlist import WaitlistEntry
from .package import Package, Membership
from .purchase import StudentPurchase, PurchaseType, UNLIMITED_CREDITS
from .payment import Payment, PaymentStatus, PaymentMethodType
from .payment_method import PaymentMethod
from .class_reminder import ClassReminder
from .studio_info import StudioInfo
from .audit_log import AuditLog, ActorType
