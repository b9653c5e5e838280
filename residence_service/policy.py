"""
Access rules for bookings and complaints.

Every function here is a pure predicate over the acting user and the
resource; none of them touch the database. Callers decide which error to
raise when a predicate is false.
"""
from .models import BookingStatus, UserRole


def is_admin(actor) -> bool:
    return actor.role == UserRole.ADMIN


def can_approve(actor) -> bool:
    """Only administrators decide pending bookings."""
    return is_admin(actor)


def can_cancel(actor, booking) -> bool:
    """Owners may cancel their own bookings; administrators any booking."""
    return is_admin(actor) or actor.id == booking.user_id


def can_view_booking(actor, booking) -> bool:
    """
    Approved bookings are public to every authenticated user; pending,
    rejected and cancelled ones only to their owner and administrators.
    """
    return (
        is_admin(actor)
        or actor.id == booking.user_id
        or booking.status == BookingStatus.APPROVED
    )


def can_manage_complaint(actor, complaint) -> bool:
    return is_admin(actor) or actor.id == complaint.user_id
