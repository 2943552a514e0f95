from datetime import datetime

from .common import CamelModel
from .purchase import StudentPurchase


class Payment(CamelModel):
    id: int
    student_profile_id: int
    amount: float
    currency: str = "USD"
    payment_method: str
    external_payment_id: str | None = None
    status: str
    payment_date: datetime | None = None
    notes: str | None = None


class PurchaseResult(CamelModel):
    payment: Payment
    purchase: StudentPurchase
