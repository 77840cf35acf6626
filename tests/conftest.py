"""Shared fixtures for the booking coordinator tests."""

from collections.abc import Callable, Iterator

import pytest
from loguru import logger as loguru_logger

from conference_booking.clock import ManualClock
from conference_booking.coordinator import BookingCoordinator
from tests.helpers import START_OF_DAY, at


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(START_OF_DAY)


@pytest.fixture
def coordinator(clock: ManualClock) -> BookingCoordinator:
    return BookingCoordinator(clock=clock)


@pytest.fixture
def add_conference(coordinator: BookingCoordinator) -> Callable[..., str]:
    def _add(name: str, start_hour: int, end_hour: int, slots: int = 1, *, location: str = "Lisbon") -> str:
        coordinator.register_conference(name, location, ("python",), at(start_hour), at(end_hour), slots)
        return name

    return _add


@pytest.fixture
def add_users(coordinator: BookingCoordinator) -> Callable[..., list[str]]:
    def _add(*user_ids: str) -> list[str]:
        for user_id in user_ids:
            coordinator.register_user(user_id, ("python",))
        return list(user_ids)

    return _add


@pytest.fixture
def captured_events() -> Iterator[list[dict]]:
    """Collect the ``extra`` dict of every loguru record emitted during the test."""
    records: list[dict] = []
    sink_id = loguru_logger.add(lambda message: records.append(dict(message.record["extra"])), level="DEBUG")
    yield records
    loguru_logger.remove(sink_id)
