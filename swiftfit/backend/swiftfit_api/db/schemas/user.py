from datetime import datetime
from pydantic import Field

from .common import CamelModel


class RegisterRequest(CamelModel):
    email: str = Field(min_length=3)
    password: str = Field(min_length=8)
    name: str | None = None
    phone: str | None = None


class ProfileUpdate(CamelModel):
    name: str | None = None
    phone: str | None = None
    email_reminders: bool | None = None
    reminder_hours_before: int | None = Field(default=None, ge=1, le=168)


class UserProfile(CamelModel):
    id: int
    user_id: int
    role: str
    email: str | None = None
    name: str | None = None
    phone: str | None = None
    email_reminders: bool = True
    reminder_hours_before: int = 24
    created_at: datetime | None = None


class TokenResponse(CamelModel):
    access_token: str
    token_type: str = "bearer"
    user: UserProfile


class SendVerificationRequest(CamelModel):
    email: str | None = None


class SendVerificationResponse(CamelModel):
    status: bool
    message: str | None = None
