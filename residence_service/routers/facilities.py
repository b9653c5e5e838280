from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import lifecycle, models, registry, schemas
from ..auth import get_current_user
from ..database import get_db
from ..errors import ValidationError
from ..rate_limiter import booking_rate_limiter

router = APIRouter(prefix="/facilities", tags=["facilities"])

BookingPage = schemas.ApiResponse[schemas.Page[schemas.BookingRead]]
BookingEnvelope = schemas.ApiResponse[schemas.BookingRead]


def booking_envelope(booking: models.FacilityBooking, message: str) -> BookingEnvelope:
    return schemas.ApiResponse(data=schemas.BookingRead.model_validate(booking), message=message)


# ---------- Facilities ----------


@router.get("", response_model=schemas.ApiResponse[List[schemas.FacilityRead]])
def list_facilities(
    db: Session = Depends(get_db),
    _: models.User = Depends(get_current_user),
):
    """
    List active facilities ordered by name.

    Access
    ------
    - Any authenticated user.
    """
    return schemas.ApiResponse(
        data=registry.list_active_facilities(db),
        message="Facilities retrieved successfully",
    )


# ---------- My bookings (current user) ----------


@router.get("/bookings/my", response_model=BookingPage)
def list_my_bookings(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    booking_status: Optional[models.BookingStatus] = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """
    List bookings that belong to the authenticated user.

    Parameters
    ----------
    page, limit : int
        Pagination (1-based page, at most 100 per page).
    booking_status : Optional[BookingStatus]
        Only return bookings in this status.

    Returns
    -------
    Page[BookingRead]
        Own bookings, latest date and start time first.
    """
    result = lifecycle.list_user_bookings(db, current_user, status=booking_status, page=page, limit=limit)
    return schemas.ApiResponse(data=result)


@router.get("/bookings/{booking_id}", response_model=BookingEnvelope)
def get_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """
    Retrieve a single booking.

    Access
    ------
    - Owner or admin: any status.
    - Anyone else: approved bookings only; others are reported as 404.
    """
    booking = lifecycle.get_booking(db, current_user, booking_id)
    return booking_envelope(booking, "Booking retrieved successfully")


# ---------- Approve / reject (admin) ----------


@router.put(
    "/bookings/{booking_id}/approve",
    response_model=BookingEnvelope,
    dependencies=[Depends(booking_rate_limiter)],
)
def approve_booking(
    booking_id: int,
    decision: schemas.BookingDecisionIn,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """
    Approve or reject a pending booking.

    Access
    ------
    - Admin only (403 otherwise).

    Behavior
    --------
    - Applies only while the booking is pending; a booking that is missing
      or already decided yields 404.
    - Records the deciding admin and the decision time.
    """
    booking = lifecycle.approve_or_reject(
        db,
        current_user,
        booking_id,
        decision.status,
        admin_notes=decision.admin_notes,
    )
    return booking_envelope(booking, f"Booking {decision.status.value} successfully")


# ---------- Cancel booking (soft) ----------


@router.put(
    "/bookings/{booking_id}/cancel",
    response_model=BookingEnvelope,
    dependencies=[Depends(booking_rate_limiter)],
)
def cancel_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """
    Cancel (soft-delete) a booking.

    Access
    ------
    - Owner of the booking.
    - Admin for any booking.

    Behavior
    --------
    - Only pending or approved bookings that have not started can be
      cancelled.
    - Sets the status to cancelled; the record is kept and its slot frees up.
    """
    booking = lifecycle.cancel_booking(db, current_user, booking_id)
    return booking_envelope(booking, "Booking cancelled successfully")


# ---------- Facility bookings ----------


@router.get("/{facility_id}/bookings", response_model=BookingPage)
def list_facility_bookings(
    facility_id: int,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    booking_status: Optional[models.BookingStatus] = Query(default=None, alias="status"),
    booking_date: Optional[date] = Query(default=None, alias="date"),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """
    List bookings of one facility, earliest first.

    Access
    ------
    - Admin: every booking.
    - Everyone else: approved bookings plus their own bookings.

    Parameters
    ----------
    facility_id : int
        Facility to list.
    booking_status : Optional[BookingStatus]
        Filter on status (``status`` query parameter).
    booking_date : Optional[date]
        Filter on day (``date`` query parameter).
    """
    result = lifecycle.list_facility_bookings(
        db,
        current_user,
        facility_id,
        status=booking_status,
        booking_date=booking_date,
        page=page,
        limit=limit,
    )
    return schemas.ApiResponse(data=result)


@router.post(
    "/{facility_id}/bookings",
    response_model=BookingEnvelope,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(booking_rate_limiter)],
)
def create_booking(
    facility_id: int,
    booking_in: schemas.BookingCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """
    Create a new booking for the authenticated user.

    Behavior
    --------
    - Validates that the time range is inside the facility's hours.
    - Rejects bookings that overlap a pending or approved booking (409).
    - Facilities that require approval get a pending booking; others are
      confirmed immediately.

    Raises
    ------
    ValidationError
        If the body names a different facility than the URL, or the time
        range is invalid.
    NotFoundError
        If the facility is missing or inactive.
    ConflictError
        If the slot is taken.
    """
    if booking_in.facility_id is not None and booking_in.facility_id != facility_id:
        raise ValidationError("facility_id does not match the facility in the URL")

    booking = lifecycle.create_booking(
        db,
        current_user,
        facility_id,
        booking_in.booking_date,
        booking_in.start_time,
        booking_in.end_time,
        purpose=booking_in.purpose,
        notes=booking_in.notes,
    )
    if booking.status == models.BookingStatus.PENDING:
        message = "Booking submitted for approval"
    else:
        message = "Booking confirmed successfully"
    return booking_envelope(booking, message)
