from datetime import date, time
from typing import Optional

from sqlalchemy.orm import Session

from . import models


def intervals_overlap(start_a: time, end_a: time, start_b: time, end_b: time) -> bool:
    """
    Half-open interval overlap test for [start_a, end_a) and [start_b, end_b).

    Intervals that only touch (one ends exactly when the other starts) do
    not overlap.
    """
    return start_a < end_b and start_b < end_a


def find_conflict(
    db: Session,
    facility_id: int,
    booking_date: date,
    start_time: time,
    end_time: time,
    excluding: Optional[int] = None,
) -> Optional[models.FacilityBooking]:
    """
    Return the first booking that occupies part of the proposed slot.

    Only pending and approved bookings on the same facility and date are
    considered; rejected and cancelled bookings never block a slot.

    Parameters
    ----------
    db : Session
        Database session. Must be the session of the transaction that will
        insert the new booking.
    facility_id : int
        Facility identifier.
    booking_date : date
        Day of the proposed booking.
    start_time, end_time : time
        Proposed interval.
    excluding : Optional[int]
        Booking id to ignore (the booking being re-checked itself).

    Returns
    -------
    Optional[FacilityBooking]
        A conflicting booking, or None when the slot is free.
    """
    query = (
        db.query(models.FacilityBooking)
        .filter(models.FacilityBooking.facility_id == facility_id)
        .filter(models.FacilityBooking.booking_date == booking_date)
        .filter(models.FacilityBooking.status.in_(models.ACTIVE_BOOKING_STATUSES))
    )
    if excluding is not None:
        query = query.filter(models.FacilityBooking.id != excluding)

    for existing in query.order_by(models.FacilityBooking.start_time).all():
        if intervals_overlap(existing.start_time, existing.end_time, start_time, end_time):
            return existing
    return None


def has_conflict(
    db: Session,
    facility_id: int,
    booking_date: date,
    start_time: time,
    end_time: time,
    excluding: Optional[int] = None,
) -> bool:
    """Check if any pending/approved booking overlaps the proposed slot."""
    return find_conflict(db, facility_id, booking_date, start_time, end_time, excluding) is not None
