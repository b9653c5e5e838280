from datetime import date, time, timedelta

import pytest

from residence_service import conflicts, models

DAY = date.today() + timedelta(days=2)


@pytest.mark.parametrize(
    "a,b,expected",
    [
        ((10, 12), (11, 13), True),
        ((10, 12), (12, 13), False),
        ((12, 13), (10, 12), False),
        ((10, 12), (10, 12), True),
        ((10, 14), (11, 12), True),
        ((11, 12), (10, 14), True),
        ((8, 9), (10, 11), False),
    ],
)
def test_intervals_overlap_is_half_open(a, b, expected):
    start_a, end_a = time(a[0]), time(a[1])
    start_b, end_b = time(b[0]), time(b[1])
    assert conflicts.intervals_overlap(start_a, end_a, start_b, end_b) is expected


def add_booking(db, facility, user, start, end, status=models.BookingStatus.APPROVED, day=DAY):
    booking = models.FacilityBooking(
        facility_id=facility.id,
        user_id=user.id,
        booking_date=day,
        start_time=start,
        end_time=end,
        status=status,
    )
    db.add(booking)
    db.commit()
    return booking


def test_only_active_bookings_conflict(db, make_user, make_facility):
    user = make_user()
    facility = make_facility()
    add_booking(db, facility, user, time(10), time(11), models.BookingStatus.CANCELLED)
    add_booking(db, facility, user, time(11), time(12), models.BookingStatus.REJECTED)

    assert not conflicts.has_conflict(db, facility.id, DAY, time(10), time(12))

    pending = add_booking(db, facility, user, time(10, 30), time(11, 30), models.BookingStatus.PENDING)
    clash = conflicts.find_conflict(db, facility.id, DAY, time(10), time(12))
    assert clash is not None and clash.id == pending.id


def test_other_day_or_facility_never_conflicts(db, make_user, make_facility):
    user = make_user()
    facility = make_facility()
    other = make_facility()
    add_booking(db, facility, user, time(10), time(12))

    assert conflicts.has_conflict(db, facility.id, DAY, time(11), time(13))
    assert not conflicts.has_conflict(db, other.id, DAY, time(11), time(13))
    assert not conflicts.has_conflict(db, facility.id, DAY + timedelta(days=1), time(11), time(13))


def test_excluding_skips_the_booking_itself(db, make_user, make_facility):
    user = make_user()
    facility = make_facility()
    booking = add_booking(db, facility, user, time(10), time(12))

    assert conflicts.has_conflict(db, facility.id, DAY, time(10), time(12))
    assert not conflicts.has_conflict(db, facility.id, DAY, time(10), time(12), excluding=booking.id)
