from datetime import datetime, timedelta, timezone

import pytest

from conference_booking.errors import ValidationError
from conference_booking.models import Booking, BookingStatus, Conference, User
from tests.helpers import at


def make_conference(**overrides) -> Conference:
    params = {
        "name": "PyCon",
        "location": "Lisbon",
        "topics": ("python",),
        "start": at(10),
        "end": at(12),
        "total_slots": 2,
    }
    params.update(overrides)
    return Conference(**params)


@pytest.mark.unit
class TestConferenceValidation:
    def test_new_conference_starts_with_all_slots_available(self):
        conference = make_conference(total_slots=3)

        assert conference.available_slots == 3
        assert conference.confirmed_count == 0

    def test_more_than_ten_topics_is_rejected(self):
        with pytest.raises(ValidationError, match="10 topics"):
            make_conference(topics=tuple(f"t{index}" for index in range(11)))

    def test_ten_topics_are_accepted(self):
        conference = make_conference(topics=[f"t{index}" for index in range(10)])

        assert len(conference.topics) == 10

    @pytest.mark.parametrize("slots", [0, -1])
    def test_slots_must_be_positive(self, slots):
        with pytest.raises(ValidationError, match="greater than 0"):
            make_conference(total_slots=slots)

    def test_duration_longer_than_twelve_hours_is_rejected(self):
        with pytest.raises(ValidationError, match="12 hours"):
            make_conference(start=at(8), end=at(8) + timedelta(hours=12, minutes=1))

    def test_duration_of_exactly_twelve_hours_is_accepted(self):
        conference = make_conference(start=at(8), end=at(20))

        assert conference.end - conference.start == timedelta(hours=12)

    @pytest.mark.parametrize("end_hour", [10, 9])
    def test_start_must_be_before_end(self, end_hour):
        with pytest.raises(ValidationError, match="before end"):
            make_conference(start=at(10), end=at(end_hour))

    def test_naive_timestamps_are_treated_as_utc(self):
        conference = make_conference(start=datetime(2030, 5, 10, 10), end=datetime(2030, 5, 10, 12))

        assert conference.start.tzinfo is timezone.utc
        assert conference.has_started(at(10))


@pytest.mark.unit
class TestConferenceSlots:
    def test_reserve_until_exhausted(self):
        conference = make_conference(total_slots=2)

        assert conference.try_reserve_slot() is True
        assert conference.try_reserve_slot() is True
        assert conference.try_reserve_slot() is False
        assert conference.available_slots == 0
        assert not conference.has_slot_available()

    def test_release_is_capped_at_total(self):
        conference = make_conference(total_slots=1)

        conference.release_slot()

        assert conference.available_slots == 1

    def test_release_after_reserve_restores_slot(self):
        conference = make_conference(total_slots=1)
        conference.try_reserve_slot()

        conference.release_slot()

        assert conference.available_slots == 1
        assert conference.has_slot_available()


@pytest.mark.unit
class TestConferenceTime:
    def test_has_started_is_inclusive_of_start(self):
        conference = make_conference()

        assert not conference.has_started(at(9, 59))
        assert conference.has_started(at(10))
        assert conference.has_started(at(11))

    @pytest.mark.parametrize(
        ("start", "end", "expected"),
        [
            (at(8), at(10), False),
            (at(12), at(14), False),
            (at(9), at(11), True),
            (at(11), at(13), True),
            (at(10, 30), at(11, 30), True),
            (at(9), at(13), True),
            (at(6), at(8), False),
        ],
    )
    def test_overlap_uses_half_open_windows(self, start, end, expected):
        conference = make_conference(start=at(10), end=at(12))

        assert conference.overlaps(start, end) is expected

    def test_overlap_is_symmetric(self):
        first = make_conference(name="A", start=at(10), end=at(12))
        second = make_conference(name="B", start=at(11), end=at(13))
        third = make_conference(name="C", start=at(12), end=at(14))

        assert first.overlaps(second.start, second.end) == second.overlaps(first.start, first.end)
        assert first.overlaps(third.start, third.end) == third.overlaps(first.start, first.end)


@pytest.mark.unit
class TestUser:
    def test_more_than_fifty_topics_is_rejected(self):
        with pytest.raises(ValidationError, match="50"):
            User(user_id="u1", interested_topics=tuple(f"t{index}" for index in range(51)))

    def test_fifty_topics_are_accepted(self):
        user = User(user_id="u1", interested_topics=[f"t{index}" for index in range(50)])

        assert len(user.interested_topics) == 50

    def test_update_status_never_creates_an_entry(self):
        user = User(user_id="u1")

        user.update_status("bk-1", BookingStatus.CONFIRMED)

        assert user.ledger == {}

    def test_update_status_overwrites_existing_entry(self):
        user = User(user_id="u1")
        user.record_booking("bk-1", BookingStatus.WAITLISTED)

        user.update_status("bk-1", BookingStatus.CONFIRMED)

        assert user.ledger == {"bk-1": BookingStatus.CONFIRMED}

    def test_active_bookings_skip_canceled_entries(self):
        user = User(user_id="u1")
        user.record_booking("bk-1", BookingStatus.CONFIRMED)
        user.record_booking("bk-2", BookingStatus.WAITLISTED)
        user.record_booking("bk-3", BookingStatus.CANCELED)

        assert user.active_bookings() == {"bk-1", "bk-2"}

    def test_remove_is_a_noop_for_unknown_ids(self):
        user = User(user_id="u1")
        user.record_booking("bk-1", BookingStatus.CONFIRMED)

        user.remove("bk-404")
        user.remove("bk-1")

        assert user.ledger == {}


@pytest.mark.unit
def test_default_booking_is_canceled_placeholder():
    booking = Booking()

    assert booking.status == BookingStatus.CANCELED
    assert booking.confirmation_deadline is None
