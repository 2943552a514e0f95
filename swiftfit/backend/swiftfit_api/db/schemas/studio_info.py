from pydantic import Field

from .common import CamelModel


class StudioInfoBase(CamelModel):
    studio_name: str = "Swift Fit Pilates"
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    cancellation_window_hours: int = Field(default=24, ge=0)
    late_cancel_penalty: float | None = None
    no_show_penalty: float | None = None


class StudioInfoUpdate(CamelModel):
    studio_name: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    cancellation_window_hours: int | None = Field(default=None, ge=0)
    late_cancel_penalty: float | None = None
    no_show_penalty: float | None = None


class StudioInfo(StudioInfoBase):
    id: int | None = None
