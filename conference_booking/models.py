from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import StrEnum

from .errors import ValidationError

MAX_CONFERENCE_TOPICS = 10
MAX_USER_TOPICS = 50
MAX_CONFERENCE_DURATION = timedelta(hours=12)


class BookingStatus(StrEnum):
    CONFIRMED = "CONFIRMED"
    WAITLISTED = "WAITLISTED"
    CANCELED = "CANCELED"


def as_utc(moment: datetime) -> datetime:
    """Attach UTC to naive datetimes so every comparison is between aware values."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


@dataclass
class Conference:
    name: str
    location: str
    topics: tuple[str, ...]
    start: datetime
    end: datetime
    total_slots: int
    available_slots: int = field(init=False)

    def __post_init__(self) -> None:
        self.topics = tuple(self.topics)
        self.start = as_utc(self.start)
        self.end = as_utc(self.end)
        if len(self.topics) > MAX_CONFERENCE_TOPICS:
            raise ValidationError(f"Maximum {MAX_CONFERENCE_TOPICS} topics allowed")
        if self.total_slots <= 0:
            raise ValidationError("Slots must be greater than 0")
        if self.end - self.start > MAX_CONFERENCE_DURATION:
            raise ValidationError("Conference duration cannot exceed 12 hours")
        if self.start >= self.end:
            raise ValidationError("Start time must be before end time")
        self.available_slots = self.total_slots

    @property
    def confirmed_count(self) -> int:
        return self.total_slots - self.available_slots

    def try_reserve_slot(self) -> bool:
        if self.available_slots > 0:
            self.available_slots -= 1
            return True
        return False

    def release_slot(self) -> None:
        if self.available_slots < self.total_slots:
            self.available_slots += 1

    def has_slot_available(self) -> bool:
        return self.available_slots > 0

    def has_started(self, now: datetime) -> bool:
        return as_utc(now) >= self.start

    def overlaps(self, start: datetime, end: datetime) -> bool:
        # Half-open windows: touching edges do not overlap.
        return not (as_utc(end) <= self.start or as_utc(start) >= self.end)


@dataclass
class User:
    user_id: str
    interested_topics: tuple[str, ...] = ()
    ledger: dict[str, BookingStatus] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        self.interested_topics = tuple(self.interested_topics)
        if len(self.interested_topics) > MAX_USER_TOPICS:
            raise ValidationError(f"Maximum {MAX_USER_TOPICS} interested topics allowed")

    def record_booking(self, booking_id: str, status: BookingStatus) -> None:
        self.ledger[booking_id] = status

    def update_status(self, booking_id: str, status: BookingStatus) -> None:
        if booking_id in self.ledger:
            self.ledger[booking_id] = status

    def remove(self, booking_id: str) -> None:
        self.ledger.pop(booking_id, None)

    def active_bookings(self) -> set[str]:
        return {
            booking_id
            for booking_id, status in self.ledger.items()
            if status != BookingStatus.CANCELED
        }


@dataclass
class Booking:
    booking_id: str = ""
    user_id: str = ""
    conference_name: str = ""
    status: BookingStatus = BookingStatus.CANCELED
    confirmation_deadline: datetime | None = None


@dataclass(frozen=True)
class StatusReport:
    status: BookingStatus
    confirmation_deadline: datetime | None = None
