class BookingError(Exception):
    """Base class for domain errors raised by the booking core."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(BookingError):
    pass


class NotFound(BookingError):
    pass


class Conflict(BookingError):
    """The current state of a row forbids the requested change."""


class InvalidTransition(Conflict):
    """A lifecycle transition was requested from a state that does not allow it."""
