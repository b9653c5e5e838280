from datetime import datetime, time, timezone
from enum import Enum as PyEnum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
)
from sqlalchemy.orm import relationship

from .database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserRole(str, PyEnum):
    """
    Enumeration of the roles known to the residence service.

    Roles
    -----
    admin
        Facility administrator; approves bookings and manages complaints.
    resident
        Regular resident with access to their own bookings and complaints.
    """
    ADMIN = "admin"
    RESIDENT = "resident"


class BookingStatus(str, PyEnum):
    """
    Enumeration of possible booking statuses.

    Values
    ------
    pending
        Waiting for an administrator decision; holds the time slot.
    approved
        Confirmed booking; holds the time slot.
    rejected
        Declined by an administrator. Terminal.
    cancelled
        Withdrawn by the owner or an administrator. Terminal.
    """
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


# Bookings in these states occupy their time slot.
ACTIVE_BOOKING_STATUSES = (BookingStatus.PENDING, BookingStatus.APPROVED)


class ComplaintStatus(str, PyEnum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class ComplaintPriority(str, PyEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class User(Base):
    """
    SQLAlchemy model for residents and administrators.

    Attributes
    ----------
    id : int
        Primary key.
    email : str
        Unique login email.
    password_hash : str
        Bcrypt-hashed password.
    first_name, last_name : str
        Display name parts.
    phone : str
        Optional contact number.
    role : UserRole
        Role controlling access privileges.
    apartment_number : str
        Optional unit identifier of a resident.
    is_active : bool
        Inactive users cannot authenticate.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    phone = Column(String(50), nullable=True)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.RESIDENT, index=True)
    apartment_number = Column(String(50), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class Facility(Base):
    """
    SQLAlchemy model representing a bookable communal facility.

    Attributes
    ----------
    id : int
        Primary key.
    name : str
        Unique display name (e.g. 'Swimming Pool').
    capacity : int
        Maximum number of people the facility holds.
    requires_approval : bool
        When set, new bookings start as pending instead of approved.
    operating_hours_start, operating_hours_end : time
        Daily window bookings must fit in.
    is_active : bool
        Inactive facilities cannot be listed or booked.
    """
    __tablename__ = "facilities"
    __table_args__ = (
        CheckConstraint("capacity > 0", name="ck_facilities_capacity_positive"),
        CheckConstraint(
            "operating_hours_start < operating_hours_end",
            name="ck_facilities_operating_hours",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    capacity = Column(Integer, nullable=False, default=1)
    requires_approval = Column(Boolean, nullable=False, default=False)
    operating_hours_start = Column(Time, nullable=False, default=time(8, 0))
    operating_hours_end = Column(Time, nullable=False, default=time(22, 0))
    is_active = Column(Boolean, nullable=False, default=True)
    image_url = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    bookings = relationship("FacilityBooking", back_populates="facility")


class FacilityBooking(Base):
    """
    SQLAlchemy model representing a reservation of a facility.

    Attributes
    ----------
    id : int
        Primary key.
    facility_id : int
        Booked facility.
    user_id : int
        Owner of the booking.
    booking_date : date
        Calendar day of the reservation.
    start_time, end_time : time
        Half-open interval [start_time, end_time) within the facility hours.
    status : BookingStatus
        Current lifecycle state.
    approved_by : int
        Administrator (or auto-approving creator) who decided the booking.
    approved_at : datetime
        When the booking left the pending state.
    """
    __tablename__ = "facility_bookings"
    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_facility_bookings_time_range"),
        Index("ix_facility_bookings_slot", "facility_id", "booking_date", "status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    facility_id = Column(Integer, ForeignKey("facilities.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    booking_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    status = Column(Enum(BookingStatus), nullable=False, default=BookingStatus.PENDING, index=True)
    purpose = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    admin_notes = Column(Text, nullable=True)
    approved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    facility = relationship("Facility", back_populates="bookings")
    user = relationship("User", foreign_keys=[user_id])
    approver = relationship("User", foreign_keys=[approved_by])


class ComplaintCategory(Base):
    __tablename__ = "complaint_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class Complaint(Base):
    """
    SQLAlchemy model for a resident complaint ticket.

    Attributes
    ----------
    status : ComplaintStatus
        open / in_progress / resolved / closed, set by administrators.
    priority : ComplaintPriority
        Urgency chosen by the reporter.
    image_url : str
        Optional attachment URL returned by the blob store.
    resolved_at : datetime
        Set when the complaint is moved to resolved.
    """
    __tablename__ = "complaints"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("complaint_categories.id"), nullable=False)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(Enum(ComplaintStatus), nullable=False, default=ComplaintStatus.OPEN, index=True)
    priority = Column(Enum(ComplaintPriority), nullable=False, default=ComplaintPriority.MEDIUM)
    image_url = Column(String(500), nullable=True)
    admin_notes = Column(Text, nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    category = relationship("ComplaintCategory")
    user = relationship("User")
