"""Booking coordination logic for the conference booking engine."""

from __future__ import annotations

import copy
import threading
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Dict, Iterable, Iterator

from .clock import Clock, IdGenerator, CounterIdGenerator, SystemClock, make_id_generator
from .errors import AlreadyExistsError, BookingError, ConflictError, InvalidStateError, NotFoundError
from .log import logger
from .models import Booking, BookingStatus, Conference, StatusReport, User
from .waitlist import WaitlistQueue

if TYPE_CHECKING:
    from .config import Settings

DEFAULT_CONFIRMATION_GRACE = timedelta(hours=1)


class BookingCoordinator:
    """Owner of the conference, user, booking and waitlist tables.

    Every public method runs inside one coordinator-wide lock, so no two
    operations ever interleave their reads and writes. Private helpers assume
    the lock is already held. A failing operation raises before it mutates
    anything; the one deliberate exception is a confirmation attempt on a
    conference that has already started, which purges its waitlist first.
    """

    def __init__(
        self,
        *,
        clock: Clock | None = None,
        id_generator: IdGenerator | None = None,
        confirmation_grace: timedelta = DEFAULT_CONFIRMATION_GRACE,
    ):
        self._clock: Clock = clock or SystemClock()
        self._next_id: IdGenerator = id_generator or CounterIdGenerator()
        self._grace = confirmation_grace
        self._lock = threading.Lock()
        self._conferences: Dict[str, Conference] = {}
        self._users: Dict[str, User] = {}
        self._bookings: Dict[str, Booking] = {}
        self._waitlists: Dict[str, WaitlistQueue] = defaultdict(WaitlistQueue)

    @classmethod
    def from_settings(cls, settings: Settings, *, clock: Clock | None = None) -> "BookingCoordinator":
        return cls(
            clock=clock,
            id_generator=make_id_generator(settings.booking_id_strategy),
            confirmation_grace=settings.confirmation_grace,
        )

    @property
    def confirmation_grace(self) -> timedelta:
        return self._grace

    @contextmanager
    def _atomic(self, operation: str, **context: Any) -> Iterator[None]:
        with self._lock:
            try:
                yield
            except BookingError as exc:
                logger.bind(event="booking.rejected", operation=operation, **context).warning(
                    "{} rejected ({}): {}", operation, type(exc).__name__, exc.message
                )
                raise

    # Registration -----------------------------------------------------

    def register_conference(
        self,
        name: str,
        location: str,
        topics: Iterable[str],
        start: datetime,
        end: datetime,
        slots: int,
    ) -> None:
        with self._atomic("register_conference", conference=name):
            if name in self._conferences:
                raise AlreadyExistsError(f"Conference '{name}' already exists")
            conference = Conference(
                name=name,
                location=location,
                topics=tuple(topics),
                start=start,
                end=end,
                total_slots=slots,
            )
            self._conferences[name] = conference
            logger.bind(event="conference.registered", conference=name).info(
                "Registered conference {} with {} slots", name, slots
            )

    def register_user(self, user_id: str, topics: Iterable[str]) -> None:
        with self._atomic("register_user", user_id=user_id):
            if user_id in self._users:
                raise AlreadyExistsError(f"User '{user_id}' already exists")
            self._users[user_id] = User(user_id=user_id, interested_topics=tuple(topics))
            logger.bind(event="user.registered", user_id=user_id).info("Registered user {}", user_id)

    # Booking operations -----------------------------------------------

    def book_conference(self, user_id: str, conference_name: str) -> str:
        """Create a booking, confirmed if a slot is free and waitlisted otherwise.

        Returns the new booking id. Confirming a booking evicts the same user
        from the waitlists of every other conference whose window overlaps.
        """
        with self._atomic("book_conference", user_id=user_id, conference=conference_name):
            user = self._require_user(user_id)
            conference = self._require_conference(conference_name)
            if conference.has_started(self._clock.now()):
                raise InvalidStateError("Cannot book conference that has already started")

            existing = self._active_booking_for(user, conference_name)
            if existing is not None:
                raise ConflictError(
                    f"User already has an active booking for this conference with ID: {existing}"
                )
            clash = self._conflicting_booking(user, conference)
            if clash is not None:
                raise ConflictError(f"User has a conflicting booking: {clash}")

            booking_id = self._next_id()
            if booking_id in self._bookings:
                raise AlreadyExistsError(f"Booking id '{booking_id}' was issued twice")

            booking = Booking(booking_id=booking_id, user_id=user_id, conference_name=conference_name)
            if conference.try_reserve_slot():
                booking.status = BookingStatus.CONFIRMED
                self._evict_from_overlapping_waitlists(user, conference)
                event = "booking.confirmed"
            else:
                booking.status = BookingStatus.WAITLISTED
                self._waitlists[conference_name].push_back(booking_id)
                event = "booking.waitlisted"

            self._bookings[booking_id] = booking
            user.record_booking(booking_id, booking.status)
            logger.bind(event=event, booking_id=booking_id, user_id=user_id, conference=conference_name).info(
                "Booking {} for {} on {} is {}", booking_id, user_id, conference_name, booking.status
            )
            return booking_id

    def cancel_booking(self, booking_id: str) -> None:
        with self._atomic("cancel_booking", booking_id=booking_id):
            booking = self._require_booking(booking_id)
            if booking.status == BookingStatus.CANCELED:
                raise InvalidStateError("Booking is already canceled")
            conference = self._conferences[booking.conference_name]
            now = self._clock.now()
            if conference.has_started(now):
                raise InvalidStateError("Cannot cancel booking after conference has started")

            previous = booking.status
            if previous == BookingStatus.CONFIRMED:
                conference.release_slot()
                self._offer_slot(conference, now)
            else:
                self._waitlists[conference.name].remove_if(lambda current: current == booking_id)

            self._retire(booking)
            logger.bind(
                event="booking.canceled",
                booking_id=booking_id,
                user_id=booking.user_id,
                conference=conference.name,
            ).info("Canceled {} booking {}", previous, booking_id)

    def confirm_waitlisted_booking(self, booking_id: str) -> bool:
        """Promote a waitlisted booking to confirmed.

        Returns False without raising when the confirmation deadline has
        passed (or was never set): the booking stays waitlisted but moves to
        the tail of its queue, and the new head is offered the slot if one is
        free.
        """
        with self._atomic("confirm_waitlisted_booking", booking_id=booking_id):
            booking = self._require_booking(booking_id)
            if booking.status != BookingStatus.WAITLISTED:
                raise InvalidStateError("Booking is not in waitlisted state")

            conference = self._conferences[booking.conference_name]
            waitlist = self._waitlists[conference.name]
            now = self._clock.now()
            if conference.has_started(now):
                self._purge_waitlist(conference)
                raise InvalidStateError("Cannot confirm booking after conference has started")

            deadline = booking.confirmation_deadline
            if deadline is None or now > deadline:
                waitlist.move_to_back(booking_id)
                logger.bind(
                    event="waitlist.requeued",
                    booking_id=booking_id,
                    user_id=booking.user_id,
                    conference=conference.name,
                ).info("Confirmation deadline missed; {} moved to the end of the waitlist", booking_id)
                if conference.has_slot_available():
                    self._offer_slot(conference, now)
                return False

            user = self._users[booking.user_id]
            clash = self._conflicting_booking(user, conference)
            if clash is not None:
                raise ConflictError(f"User now has a conflicting booking: {clash}")
            if not conference.try_reserve_slot():
                raise InvalidStateError("No slots available")

            waitlist.remove_if(lambda current: current == booking_id)
            booking.status = BookingStatus.CONFIRMED
            booking.confirmation_deadline = None
            user.update_status(booking_id, BookingStatus.CONFIRMED)
            self._evict_from_overlapping_waitlists(user, conference)
            logger.bind(
                event="booking.promoted",
                booking_id=booking_id,
                user_id=user.user_id,
                conference=conference.name,
            ).info("Waitlisted booking {} confirmed", booking_id)
            return True

    def get_booking_status(self, booking_id: str) -> StatusReport:
        with self._atomic("get_booking_status", booking_id=booking_id):
            booking = self._require_booking(booking_id)
            deadline = None
            if booking.status == BookingStatus.WAITLISTED:
                conference = self._conferences[booking.conference_name]
                if conference.has_slot_available():
                    deadline = booking.confirmation_deadline
            return StatusReport(status=booking.status, confirmation_deadline=deadline)

    # Read-only queries ------------------------------------------------

    def get_booking(self, booking_id: str) -> Booking:
        with self._lock:
            return copy.copy(self._require_booking(booking_id))

    def get_conference(self, name: str) -> Conference:
        with self._lock:
            return copy.copy(self._require_conference(name))

    def get_user(self, user_id: str) -> User:
        with self._lock:
            return copy.deepcopy(self._require_user(user_id))

    def list_conferences(self) -> list[Conference]:
        with self._lock:
            conferences = [copy.copy(conference) for conference in self._conferences.values()]
        conferences.sort(key=lambda conference: (conference.start, conference.name))
        return conferences

    def list_users(self) -> list[User]:
        with self._lock:
            return [copy.deepcopy(user) for user in self._users.values()]

    def list_bookings(
        self,
        *,
        user_id: str | None = None,
        conference_name: str | None = None,
    ) -> list[Booking]:
        with self._lock:
            return [
                copy.copy(booking)
                for booking in self._bookings.values()
                if (user_id is None or booking.user_id == user_id)
                and (conference_name is None or booking.conference_name == conference_name)
            ]

    def waitlist_for(self, conference_name: str) -> list[str]:
        with self._lock:
            self._require_conference(conference_name)
            queue = self._waitlists.get(conference_name)
            return queue.snapshot() if queue is not None else []

    def active_bookings_for(self, user_id: str) -> list[Booking]:
        with self._lock:
            user = self._require_user(user_id)
            return [copy.copy(self._bookings[booking_id]) for booking_id in sorted(user.active_bookings())]

    # Helpers (lock held) ----------------------------------------------

    def _require_user(self, user_id: str) -> User:
        user = self._users.get(user_id)
        if user is None:
            raise NotFoundError(f"User '{user_id}' not found")
        return user

    def _require_conference(self, name: str) -> Conference:
        conference = self._conferences.get(name)
        if conference is None:
            raise NotFoundError(f"Conference '{name}' not found")
        return conference

    def _require_booking(self, booking_id: str) -> Booking:
        booking = self._bookings.get(booking_id)
        if booking is None:
            raise NotFoundError(f"Booking '{booking_id}' not found")
        return booking

    def _active_booking_for(self, user: User, conference_name: str) -> str | None:
        for booking_id in user.active_bookings():
            booking = self._bookings[booking_id]
            if booking.conference_name == conference_name and booking.status != BookingStatus.CANCELED:
                return booking_id
        return None

    def _conflicting_booking(self, user: User, conference: Conference) -> str | None:
        for booking_id in user.active_bookings():
            booking = self._bookings[booking_id]
            if booking.status != BookingStatus.CONFIRMED:
                continue
            existing = self._conferences[booking.conference_name]
            if existing.overlaps(conference.start, conference.end):
                return booking_id
        return None

    def _retire(self, booking: Booking) -> None:
        booking.status = BookingStatus.CANCELED
        booking.confirmation_deadline = None
        self._users[booking.user_id].remove(booking.booking_id)

    def _evict_from_overlapping_waitlists(self, user: User, booked: Conference) -> None:
        # Scans every conference on each confirmation: O(#conferences).
        for name, conference in self._conferences.items():
            if name == booked.name or not conference.overlaps(booked.start, booked.end):
                continue
            queue = self._waitlists.get(name)
            if not queue:
                continue
            evicted = queue.remove_if(lambda current: self._bookings[current].user_id == user.user_id)
            for booking_id in evicted:
                self._retire(self._bookings[booking_id])
                logger.bind(
                    event="waitlist.evicted",
                    booking_id=booking_id,
                    user_id=user.user_id,
                    conference=name,
                ).info("Canceled overlapping waitlisted booking {}", booking_id)

    def _purge_waitlist(self, conference: Conference) -> None:
        queue = self._waitlists[conference.name]
        while (booking_id := queue.pop_front()) is not None:
            self._retire(self._bookings[booking_id])
            logger.bind(event="waitlist.purged", booking_id=booking_id, conference=conference.name).info(
                "Canceled waitlisted booking {}: conference has started", booking_id
            )

    def _offer_slot(self, conference: Conference, now: datetime) -> None:
        head = self._waitlists[conference.name].peek_front()
        if head is None:
            return
        booking = self._bookings[head]
        booking.confirmation_deadline = now + self._grace
        logger.bind(
            event="waitlist.offered",
            booking_id=head,
            user_id=booking.user_id,
            conference=conference.name,
        ).info("Slot offered to {} until {}", head, booking.confirmation_deadline.isoformat())
