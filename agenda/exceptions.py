"""
Scheduling error taxonomy

Services raise these; main.py maps them to HTTP responses through
an exception handler that reads each class's status_code.
"""


class SchedulingError(Exception):
    """Base class for errors surfaced to the calendar user"""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class DayBlockedError(SchedulingError):
    """Target date has a BlockedDay record"""

    status_code = 409


class ConflictError(SchedulingError):
    """Proposed interval collides with an occupied slot"""

    status_code = 409


class DayAlreadyBlockedError(ConflictError):
    """A BlockedDay record already exists for the date"""


class NotFoundError(SchedulingError):
    status_code = 404


class ValidationError(SchedulingError):
    """Input is well-formed but violates a business rule"""

    status_code = 422


class PersistenceError(SchedulingError):
    """Underlying store failure; the driver error is chained as __cause__"""

    status_code = 500
