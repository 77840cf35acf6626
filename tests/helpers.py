"""Test helpers shared across the booking tests."""

from datetime import datetime, timezone

from conference_booking.coordinator import BookingCoordinator
from conference_booking.models import BookingStatus, Conference

START_OF_DAY = datetime(2030, 5, 10, 8, 0, tzinfo=timezone.utc)


def at(hour: int, minute: int = 0) -> datetime:
    """Timestamp on the test day."""
    return START_OF_DAY.replace(hour=hour, minute=minute)


def assert_invariants(coordinator: BookingCoordinator) -> None:
    bookings = coordinator.list_bookings()
    conferences = {conference.name: conference for conference in coordinator.list_conferences()}

    for conference in conferences.values():
        assert 0 <= conference.available_slots <= conference.total_slots
        confirmed = [
            booking
            for booking in bookings
            if booking.conference_name == conference.name and booking.status == BookingStatus.CONFIRMED
        ]
        assert len(confirmed) == conference.total_slots - conference.available_slots

        queue = coordinator.waitlist_for(conference.name)
        assert len(queue) == len(set(queue))
        for booking_id in queue:
            queued = coordinator.get_booking(booking_id)
            assert queued.status == BookingStatus.WAITLISTED
            assert queued.conference_name == conference.name

    held_by_user: dict[str, list[Conference]] = {}
    for booking in bookings:
        if booking.status == BookingStatus.CONFIRMED:
            held_by_user.setdefault(booking.user_id, []).append(conferences[booking.conference_name])
    for held in held_by_user.values():
        for index, first in enumerate(held):
            for second in held[index + 1 :]:
                assert not first.overlaps(second.start, second.end)
