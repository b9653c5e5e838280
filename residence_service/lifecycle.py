"""
Booking lifecycle: creation, approval, cancellation and listing.

Transitions::

    create   -> pending     facility requires approval
    create   -> approved    otherwise (creator recorded as approver)
    pending  -> approved    admin decision
    pending  -> rejected    admin decision
    pending  -> cancelled   owner or admin, before the start time
    approved -> cancelled   owner or admin, before the start time

``rejected`` and ``cancelled`` are terminal. Every transition is applied with
a single conditional UPDATE so that two concurrent requests cannot both move
the same booking out of a state.
"""
import logging
from datetime import date, datetime, time, timezone
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import conflicts, models, policy, registry, schemas
from .errors import (
    AlreadyCancelledError,
    ConflictError,
    ForbiddenError,
    InternalError,
    InvalidStateError,
    InvalidTimeRangeError,
    NotFoundError,
    PastBookingError,
    ServiceError,
    ValidationError,
)
from .pagination import paginate

logger = logging.getLogger(__name__)

Booking = models.FacilityBooking


def ensure_time_valid(facility: models.Facility, start_time: time, end_time: time) -> None:
    """
    Validate that a booking time range is well-formed and inside the
    facility's operating hours.

    Raises
    ------
    InvalidTimeRangeError
        If end_time is not strictly after start_time, or the interval leaves
        [operating_hours_start, operating_hours_end].
    """
    if start_time >= end_time:
        raise InvalidTimeRangeError("end_time must be after start_time")

    if start_time < facility.operating_hours_start or end_time > facility.operating_hours_end:
        raise InvalidTimeRangeError(
            "Facility is only available between "
            f"{facility.operating_hours_start:%H:%M} and {facility.operating_hours_end:%H:%M}"
        )


def get_booking_or_404(db: Session, booking_id: int) -> models.FacilityBooking:
    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if booking is None:
        raise NotFoundError("Booking not found")
    return booking


def create_booking(
    db: Session,
    actor: models.User,
    facility_id: int,
    booking_date: date,
    start_time: time,
    end_time: time,
    purpose: Optional[str] = None,
    notes: Optional[str] = None,
) -> models.FacilityBooking:
    """
    Create a booking for ``actor``.

    Behavior
    --------
    - The facility must exist and be active.
    - The interval must be non-empty and inside the operating hours.
    - No pending/approved booking may overlap it on the same day.
    - Facilities requiring approval get a pending booking; all others are
      auto-approved with the creator recorded as approver.

    The facility row (the database, on SQLite) is locked for the duration of
    the transaction, so the conflict check and the insert are atomic with
    respect to other creators on the same facility.

    Returns
    -------
    FacilityBooking
        The persisted booking.

    Raises
    ------
    NotFoundError, InvalidTimeRangeError, ConflictError, InternalError
    """
    try:
        facility = registry.get_active_facility(db, facility_id, for_update=True)
        ensure_time_valid(facility, start_time, end_time)

        clash = conflicts.find_conflict(db, facility_id, booking_date, start_time, end_time)
        if clash is not None:
            logger.info(
                "Booking request by user %s for facility %s on %s %s-%s clashes with booking %s",
                actor.id, facility_id, booking_date, start_time, end_time, clash.id,
            )
            raise ConflictError("Time slot is already booked or pending approval")

        now = datetime.now(timezone.utc)
        booking = Booking(
            facility_id=facility.id,
            user_id=actor.id,
            booking_date=booking_date,
            start_time=start_time,
            end_time=end_time,
            purpose=purpose,
            notes=notes,
            status=models.BookingStatus.PENDING,
            created_at=now,
        )
        if not facility.requires_approval:
            # auto-approval happens at creation time
            booking.status = models.BookingStatus.APPROVED
            booking.approved_by = actor.id
            booking.approved_at = now

        db.add(booking)
        db.commit()
    except ServiceError:
        # releases the facility row lock
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to create booking for facility %s", facility_id)
        raise InternalError("Failed to create booking") from exc

    db.refresh(booking)
    logger.info(
        "Booking %s created by user %s for facility %s with status %s",
        booking.id, actor.id, facility_id, booking.status.value,
    )
    return booking


def approve_or_reject(
    db: Session,
    actor: models.User,
    booking_id: int,
    decision,
    admin_notes: Optional[str] = None,
) -> models.FacilityBooking:
    """
    Decide a pending booking.

    Only a booking that is currently pending can be decided, and only once.
    A missing booking and a booking that is no longer pending are reported
    the same way (404).

    Raises
    ------
    ForbiddenError
        If the actor is not an administrator.
    ValidationError
        If the decision is neither approved nor rejected.
    NotFoundError
        If no pending booking with that id exists.
    """
    if not policy.can_approve(actor):
        logger.warning("User %s tried to decide booking %s without admin rights", actor.id, booking_id)
        raise ForbiddenError("Admin access required")

    new_status = models.BookingStatus(getattr(decision, "value", decision))
    if new_status not in (models.BookingStatus.APPROVED, models.BookingStatus.REJECTED):
        raise ValidationError("status must be either approved or rejected")

    values = {
        Booking.status: new_status,
        Booking.approved_by: actor.id,
        Booking.approved_at: datetime.now(timezone.utc),
    }
    if admin_notes is not None:
        values[Booking.admin_notes] = admin_notes

    try:
        updated = (
            db.query(Booking)
            .filter(Booking.id == booking_id)
            .filter(Booking.status == models.BookingStatus.PENDING)
            .update(values, synchronize_session=False)
        )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to update status of booking %s", booking_id)
        raise InternalError("Failed to update booking status") from exc

    if updated == 0:
        raise NotFoundError("Booking not found or not pending approval")

    logger.info("Booking %s %s by admin %s", booking_id, new_status.value, actor.id)
    return get_booking_or_404(db, booking_id)


def cancel_booking(
    db: Session,
    actor: models.User,
    booking_id: int,
    now: Optional[datetime] = None,
) -> models.FacilityBooking:
    """
    Cancel a pending or approved booking that has not started yet.

    Parameters
    ----------
    now : Optional[datetime]
        Current local wall-clock time; defaults to ``datetime.now()``.
        Booking dates and times are facility-local, so this is naive.

    Raises
    ------
    NotFoundError
        If the booking does not exist.
    ForbiddenError
        If the actor is neither the owner nor an administrator.
    AlreadyCancelledError
        If the booking is already cancelled.
    InvalidStateError
        If the booking was rejected, or changed state concurrently.
    PastBookingError
        If the booking's start is already in the past.
    """
    booking = get_booking_or_404(db, booking_id)

    if not policy.can_cancel(actor, booking):
        logger.warning("User %s tried to cancel booking %s owned by %s", actor.id, booking_id, booking.user_id)
        raise ForbiddenError("Access denied")

    if booking.status == models.BookingStatus.CANCELLED:
        raise AlreadyCancelledError("Booking is already cancelled")
    if booking.status not in models.ACTIVE_BOOKING_STATUSES:
        raise InvalidStateError("Only pending or approved bookings can be cancelled")

    now = now or datetime.now()
    if datetime.combine(booking.booking_date, booking.start_time) < now:
        raise PastBookingError("Cannot cancel past bookings")

    try:
        updated = (
            db.query(Booking)
            .filter(Booking.id == booking_id)
            .filter(Booking.status.in_(models.ACTIVE_BOOKING_STATUSES))
            .update({Booking.status: models.BookingStatus.CANCELLED}, synchronize_session=False)
        )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to cancel booking %s", booking_id)
        raise InternalError("Failed to cancel booking") from exc

    if updated == 0:
        raise InvalidStateError("Booking can no longer be cancelled")

    logger.info("Booking %s cancelled by user %s", booking_id, actor.id)
    db.refresh(booking)
    return booking


def get_booking(db: Session, actor: models.User, booking_id: int) -> models.FacilityBooking:
    """Fetch one booking; bookings the actor may not see are reported as missing."""
    booking = get_booking_or_404(db, booking_id)
    if not policy.can_view_booking(actor, booking):
        raise NotFoundError("Booking not found")
    return booking


def list_facility_bookings(
    db: Session,
    actor: models.User,
    facility_id: int,
    status: Optional[models.BookingStatus] = None,
    booking_date: Optional[date] = None,
    page: int = 1,
    limit: int = 10,
) -> schemas.Page:
    """
    List a facility's bookings, earliest first.

    Administrators see every booking. Everyone else sees approved bookings
    plus their own bookings in any status.
    """
    query = db.query(Booking).filter(Booking.facility_id == facility_id)

    if not policy.is_admin(actor):
        query = query.filter(
            or_(
                Booking.status == models.BookingStatus.APPROVED,
                Booking.user_id == actor.id,
            )
        )
    if status is not None:
        query = query.filter(Booking.status == status)
    if booking_date is not None:
        query = query.filter(Booking.booking_date == booking_date)

    query = query.order_by(Booking.booking_date.asc(), Booking.start_time.asc(), Booking.id.asc())
    return paginate(query, page, limit, schemas.BookingRead)


def list_user_bookings(
    db: Session,
    actor: models.User,
    status: Optional[models.BookingStatus] = None,
    page: int = 1,
    limit: int = 10,
) -> schemas.Page:
    """List the actor's own bookings, latest first."""
    query = db.query(Booking).filter(Booking.user_id == actor.id)
    if status is not None:
        query = query.filter(Booking.status == status)

    query = query.order_by(Booking.booking_date.desc(), Booking.start_time.desc(), Booking.id.desc())
    return paginate(query, page, limit, schemas.BookingRead)
