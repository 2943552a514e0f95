from pydantic import Field

from .common import CamelModel


class ClassTypeCreate(CamelModel):
    name: str
    description: str | None = None
    duration_minutes: int = Field(default=50, gt=0)
    is_active: bool = True


class ClassType(ClassTypeCreate):
    id: int


class InstructorCreate(CamelModel):
    name: str
    user_profile_id: int | None = None
    bio: str | None = None
    specialties: str | None = None
    is_active: bool = True


class Instructor(InstructorCreate):
    id: int


class PackageCreate(CamelModel):
    name: str
    description: str | None = None
    credits: int = Field(gt=0)
    price: float = Field(ge=0)
    expiration_days: int | None = Field(default=None, gt=0)
    is_active: bool = True


class Package(PackageCreate):
    id: int


class MembershipCreate(CamelModel):
    name: str
    description: str | None = None
    price_monthly: float = Field(ge=0)
    is_unlimited: bool = False
    credits_per_month: int | None = Field(default=None, gt=0)
    is_active: bool = True


class Membership(MembershipCreate):
    id: int
