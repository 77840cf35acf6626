"""Threaded callers hammering one coordinator must never oversell a conference."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from conference_booking.errors import BookingError
from conference_booking.models import BookingStatus
from tests.helpers import assert_invariants


@pytest.mark.unit
def test_concurrent_bookings_respect_capacity(coordinator, add_conference, add_users):
    add_conference("Concurrent Test Conf", 10, 12, slots=2)
    users = add_users(*(f"user{index}" for index in range(25)))

    with ThreadPoolExecutor(max_workers=8) as pool:
        booking_ids = list(pool.map(lambda user_id: coordinator.book_conference(user_id, "Concurrent Test Conf"), users))

    statuses = [coordinator.get_booking_status(booking_id).status for booking_id in booking_ids]
    assert len(set(booking_ids)) == len(users)
    assert statuses.count(BookingStatus.CONFIRMED) == 2
    assert statuses.count(BookingStatus.WAITLISTED) == 23
    assert coordinator.get_conference("Concurrent Test Conf").available_slots == 0
    assert len(coordinator.waitlist_for("Concurrent Test Conf")) == 23
    assert_invariants(coordinator)


@pytest.mark.unit
def test_concurrent_mixed_operations_keep_invariants(coordinator, add_conference, add_users):
    add_conference("A", 10, 12, slots=3)
    add_conference("B", 11, 13, slots=2)
    add_conference("C", 13, 14, slots=1)
    users = add_users(*(f"user{index}" for index in range(12)))

    def worker(index: int) -> None:
        user_id = users[index % len(users)]
        for conference in ("A", "B", "C"):
            try:
                booking_id = coordinator.book_conference(user_id, conference)
            except BookingError:
                continue
            if index % 3 == 0:
                try:
                    coordinator.cancel_booking(booking_id)
                except BookingError:
                    pass
            else:
                try:
                    coordinator.confirm_waitlisted_booking(booking_id)
                except BookingError:
                    pass

    with ThreadPoolExecutor(max_workers=6) as pool:
        list(pool.map(worker, range(36)))

    assert_invariants(coordinator)
