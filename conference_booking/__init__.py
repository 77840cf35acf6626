"""Conference booking coordinator with capacity, waitlists and overlap checks."""

from . import data_loader
from .clock import Clock, CounterIdGenerator, ManualClock, SystemClock
from .coordinator import BookingCoordinator
from .errors import (
    AlreadyExistsError,
    BookingError,
    ConflictError,
    DataLoaderError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from .models import Booking, BookingStatus, Conference, StatusReport, User

__all__ = [
    "data_loader",
    "AlreadyExistsError",
    "Booking",
    "BookingCoordinator",
    "BookingError",
    "BookingStatus",
    "Clock",
    "Conference",
    "ConflictError",
    "CounterIdGenerator",
    "DataLoaderError",
    "InvalidStateError",
    "ManualClock",
    "NotFoundError",
    "StatusReport",
    "SystemClock",
    "User",
    "ValidationError",
]
