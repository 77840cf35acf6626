"""Error types raised by the booking coordinator."""


class BookingError(Exception):
    """Base class for every booking failure surfaced to callers."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(BookingError):
    """Unknown conference, user or booking."""


class AlreadyExistsError(BookingError):
    """Duplicate conference or user registration."""


class ValidationError(BookingError):
    """Bad parameters when creating a conference or user."""


class InvalidStateError(BookingError):
    """The booking or conference is not in a state that allows the operation."""


class ConflictError(BookingError):
    """Duplicate active booking or an overlapping confirmed booking."""


class DataLoaderError(BookingError):
    """Raised when a CSV file cannot be parsed correctly."""
