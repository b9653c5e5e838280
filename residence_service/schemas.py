import re
from datetime import date, datetime, time
from enum import Enum as PyEnum
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from .models import BookingStatus, ComplaintPriority, ComplaintStatus, UserRole

T = TypeVar("T")

TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")


# ---------- Envelope ----------

class ApiResponse(BaseModel, Generic[T]):
    """
    Envelope shared by every endpoint.

    Successful responses carry ``data`` and usually ``message``; failures set
    ``success`` to False and fill ``error`` (plus ``details`` for field-level
    validation problems).
    """
    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None
    error: Optional[str] = None
    details: Optional[List[str]] = None


class Page(BaseModel, Generic[T]):
    """
    One page of a listing.

    ``totalPages`` is ``ceil(total / limit)``.
    """
    items: List[T]
    page: int
    limit: int
    total: int
    total_pages: int = Field(alias="totalPages")

    model_config = ConfigDict(populate_by_name=True)


# ---------- Users ----------

class UserCreate(BaseModel):
    """
    Schema for resident registration.
    Registration does NOT accept a role; it is assigned internally.
    """
    email: EmailStr
    password: str
    first_name: str = Field(..., min_length=2, max_length=100)
    last_name: str = Field(..., min_length=2, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=50)
    apartment_number: Optional[str] = Field(default=None, max_length=50)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserSummary(BaseModel):
    """
    Public subset of a user embedded in bookings and complaints.
    """
    id: int
    first_name: str
    last_name: str
    email: str
    apartment_number: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class UserRead(UserSummary):
    """
    Schema returned when reading a full user profile.

    Hides the password hash.
    """
    phone: Optional[str] = None
    role: UserRole
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None


class AuthResult(BaseModel):
    user: UserRead
    access_token: str
    token_type: str = "bearer"


# ---------- Facilities ----------

class FacilityRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    capacity: int
    requires_approval: bool
    operating_hours_start: time
    operating_hours_end: time
    is_active: bool
    image_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# ---------- Bookings ----------

class BookingCreate(BaseModel):
    """
    Schema for requesting a facility booking.

    ``facility_id`` is optional because the facility is taken from the URL;
    when present it must match it.
    """
    facility_id: Optional[int] = Field(default=None, ge=1)
    booking_date: date
    start_time: time
    end_time: time
    purpose: Optional[str] = Field(default=None, max_length=500)
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_clock_time(cls, value):
        if isinstance(value, time):
            return value
        if not isinstance(value, str) or not TIME_PATTERN.match(value):
            raise ValueError("must be a time of day in HH:MM format")
        hours, minutes = value.split(":")
        return time(int(hours), int(minutes))

    @field_validator("booking_date")
    @classmethod
    def not_in_the_past(cls, value: date) -> date:
        if value < date.today():
            raise ValueError("must not be in the past")
        return value


class BookingDecision(str, PyEnum):
    APPROVED = "approved"
    REJECTED = "rejected"


class BookingDecisionIn(BaseModel):
    status: BookingDecision
    admin_notes: Optional[str] = Field(default=None, max_length=1000)


class BookingRead(BaseModel):
    """
    Schema returned when reading a booking.

    Includes the resolved facility, owner and approver.
    """
    id: int
    facility_id: int
    user_id: int
    booking_date: date
    start_time: time
    end_time: time
    status: BookingStatus
    purpose: Optional[str] = None
    notes: Optional[str] = None
    admin_notes: Optional[str] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    facility: Optional[FacilityRead] = None
    user: Optional[UserSummary] = None
    approver: Optional[UserSummary] = None

    model_config = ConfigDict(from_attributes=True)


# ---------- Complaints ----------

class ComplaintCategoryRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ComplaintUpdate(BaseModel):
    """
    Partial update of a complaint; only provided fields are applied.
    """
    title: Optional[str] = Field(default=None, min_length=5, max_length=200)
    description: Optional[str] = Field(default=None, min_length=10, max_length=2000)
    priority: Optional[ComplaintPriority] = None
    admin_notes: Optional[str] = Field(default=None, max_length=1000)


class ComplaintStatusUpdate(BaseModel):
    status: ComplaintStatus
    admin_notes: Optional[str] = Field(default=None, max_length=1000)


class ComplaintRead(BaseModel):
    id: int
    user_id: int
    category_id: int
    title: str
    description: str
    status: ComplaintStatus
    priority: ComplaintPriority
    image_url: Optional[str] = None
    admin_notes: Optional[str] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    category: Optional[ComplaintCategoryRead] = None
    user: Optional[UserSummary] = None

    model_config = ConfigDict(from_attributes=True)
