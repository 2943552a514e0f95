from datetime import datetime

from .common import CamelModel


class WaitlistJoin(CamelModel):
    class_id: int | None = None
    student_profile_id: int | None = None


class WaitlistEntry(CamelModel):
    id: int
    class_id: int
    student_profile_id: int
    position: int
    joined_at: datetime | None = None
    notified: bool = False


class PromoteRequest(CamelModel):
    class_id: int | None = None
    auto_promote: bool = True


class PromotionResult(CamelModel):
    waitlist_id: int
    student_profile_id: int
    action: str
    booking_id: int | None = None


class PromoteResponse(CamelModel):
    message: str
    promoted: int
    spots_available: int | None = None
    spots_remaining: int | None = None
    results: list[PromotionResult] | None = None
