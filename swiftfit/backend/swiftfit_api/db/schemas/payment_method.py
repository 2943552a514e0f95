from datetime import datetime
from typing import Any

from .common import CamelModel


class PaymentMethodCreate(CamelModel):
    student_profile_id: Any = None
    square_card_id: Any = None
    card_brand: str | None = None
    last_4: str | None = None
    exp_month: int | None = None
    exp_year: int | None = None
    is_default: bool = False


class PaymentMethod(CamelModel):
    id: int
    student_profile_id: int
    square_card_id: str
    card_brand: str | None = None
    last_4: str | None = None
    exp_month: int | None = None
    exp_year: int | None = None
    is_default: bool = False
    created_at: datetime | None = None
