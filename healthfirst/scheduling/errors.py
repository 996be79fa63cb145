"""Error taxonomy shared by the scheduling engine and the HTTP layer."""

from fastapi import status


class SchedulingError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, errors: dict | None = None):
        super().__init__(message)
        self.message = message
        self.errors = errors


class ValidationFailure(SchedulingError):
    """Malformed or out-of-range input, or a window outside availability."""
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class SlotConflict(SchedulingError):
    """Already booked, already blocked, or overlapping another slot."""
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, message: str, conflicts: list | None = None):
        super().__init__(message)
        self.conflicts = conflicts or []


class NotFound(SchedulingError):
    status_code = status.HTTP_404_NOT_FOUND


class BookingFailed(SchedulingError):
    """The transactional section failed and was rolled back."""

    def __init__(self, message: str = 'Failed to book appointment.'):
        super().__init__(message)
